"""Report renderers — SARIF artifact, chat digest, terminal."""

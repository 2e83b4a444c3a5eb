"""Git interface layer — adapter and authorship attribution."""

from scangate.git.adapter import GitError, RemoteRepo, parse_remote
from scangate.git.attribution import (
    AttributionResolver,
    AttributionStrategy,
    BlameStrategy,
    RemoteApiStrategy,
    build_resolver,
    parse_blame,
)

__all__ = [
    "AttributionResolver",
    "AttributionStrategy",
    "BlameStrategy",
    "GitError",
    "RemoteApiStrategy",
    "RemoteRepo",
    "build_resolver",
    "parse_blame",
    "parse_remote",
]

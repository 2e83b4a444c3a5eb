"""Starter .scangate.toml and policy.yaml templates."""

DEFAULT_TOML = """\
# scangate configuration
version = "1.0"

[workspace]
results_path = "output.json"        # scanner results document
report_path = "sarif_report.json"   # SARIF artifact written every run
# repo_dir = "app"                  # checked-out revision, used for git blame
# source_url = ""                   # or SCANGATE_SOURCE_URL (may carry a token)

[scans]
sast = true
sca = true
secret = true
license = true
skip_malformed = false              # true = skip a malformed section, false = abort

[policy]
# source = "policy.yaml"            # URL or path; empty = never fail the gate

[store]
backend = "file"                    # mongo | file | memory
ledger_path = ".scangate/ledger.jsonl"
# mongo_uri = ""                    # or SCANGATE_MONGO_URI

[notify]
# chat_webhook_url = ""             # or SCANGATE_SLACK_URL
# job_id = ""                       # or SCANGATE_JOB_ID

[tracker]
# url = ""                          # DefectDojo base URL
# token = ""
# product_name = ""
# engagement_name = ""

[attribution]
enabled = true
remote_api = true
"""

DEFAULT_POLICY = """\
# scangate policy: the last matching rule sets the failure reason
sast:
  critical:
    operator: greater_than
    value: 0
  high:
    operator: greater_than
    value: 5
sca:
  critical:
    operator: greater_than
    value: 0
dep:
  contains: []
secret:
  contains:
    - AWS
    - GITHUB
license:
  contains:
    - agpl-3.0
"""

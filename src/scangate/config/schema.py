"""Configuration schema — dataclasses for every config section."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Literal, Optional

StoreBackend = Literal["mongo", "file", "memory"]

SCAN_TYPES: tuple[str, ...] = ("sast", "sca", "secret", "license")


@dataclass(frozen=True)
class Workspace:
    """Filesystem locations for one run.

    Frozen: built once at startup and passed to every stage instead of
    reading fixed temp-directory paths.
    """

    root: Path = Path(".")
    results_path: Path = Path("output.json")
    report_path: Path = Path("sarif_report.json")
    repo_dir: Optional[Path] = None  # checked-out revision used for blame
    source_url: str = ""  # may carry credentials, e.g. https://<token>@github.com/o/r

    def resolve(self, path: Path) -> Path:
        return path if path.is_absolute() else self.root / path

    @property
    def results_file(self) -> Path:
        return self.resolve(self.results_path)

    @property
    def report_file(self) -> Path:
        return self.resolve(self.report_path)


@dataclass
class WorkspaceConfig:
    root: str = "."
    results_path: str = "output.json"
    report_path: str = "sarif_report.json"
    repo_dir: Optional[str] = None
    source_url: str = ""


@dataclass
class ScansConfig:
    sast: bool = True
    sca: bool = True
    secret: bool = True
    license: bool = True
    skip_malformed: bool = False  # skip a malformed section instead of aborting

    def enabled(self) -> List[str]:
        return [s for s in SCAN_TYPES if getattr(self, s)]


@dataclass
class PolicyConfig:
    source: str = ""  # URL or local path; empty = no gate


@dataclass
class StoreConfig:
    backend: StoreBackend = "memory"
    mongo_uri: str = ""
    database: str = "scangate"
    collection: str = "fingerprints"
    jobs_collection: str = "jobs"
    ledger_path: str = ".scangate/ledger.jsonl"


@dataclass
class NotifyConfig:
    chat_webhook_url: str = ""
    job_id: str = ""


@dataclass
class TrackerConfig:
    url: str = ""
    token: str = ""
    product_name: str = ""
    engagement_name: str = ""

    @property
    def configured(self) -> bool:
        return all((self.url, self.token, self.product_name, self.engagement_name))


@dataclass
class AttributionConfig:
    enabled: bool = True
    remote_api: bool = True
    git_timeout: int = 30


@dataclass
class OutputConfig:
    show_tables: bool = True
    message_width: int = 50  # terminal truncation for messages


@dataclass
class ScanGateConfig:
    version: str = "1.0"
    workspace: WorkspaceConfig = field(default_factory=WorkspaceConfig)
    scans: ScansConfig = field(default_factory=ScansConfig)
    policy: PolicyConfig = field(default_factory=PolicyConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    notify: NotifyConfig = field(default_factory=NotifyConfig)
    tracker: TrackerConfig = field(default_factory=TrackerConfig)
    attribution: AttributionConfig = field(default_factory=AttributionConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    def build_workspace(self) -> Workspace:
        ws = self.workspace
        return Workspace(
            root=Path(ws.root),
            results_path=Path(ws.results_path),
            report_path=Path(ws.report_path),
            repo_dir=Path(ws.repo_dir) if ws.repo_dir else None,
            source_url=ws.source_url,
        )

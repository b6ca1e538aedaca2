# infrastructure/config.py
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from spam_filtering.domain.errors import ConfigError
from spam_filtering.infrastructure.files import read_yaml

# ---------- collection presets ----------
_CW09_NO_DOCS = "clueweb09-en0000-00-00000"
_CW12_NO_DOCS = "clueweb12-0000wb-00-00000"


@dataclass(frozen=True)
class CollectionPreset:
    spam_core: str
    no_documents_id: str


COLLECTIONS: Dict[str, CollectionPreset] = {
    "CW09A": CollectionPreset("spam09A", _CW09_NO_DOCS),
    "CW09B": CollectionPreset("spam09A", _CW09_NO_DOCS),
    "MQ09": CollectionPreset("spam09A", _CW09_NO_DOCS),
    "MQE1": CollectionPreset("spam09A", _CW09_NO_DOCS),
    "CW12B": CollectionPreset("spam12A", _CW12_NO_DOCS),
}

INPUT_DIR_NAME = "base_spam_runs"
OUTPUT_DIR_TEMPLATE = "spam_{threshold}_runs"


# ---------- dataclasses ----------
@dataclass
class SolrCfg:
    base_url: str
    core: str
    query_field: Optional[str]
    timeout_s: float

    @property
    def core_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/{self.core}"


@dataclass
class PathsCfg:
    input_dir: Path
    output_template: str
    suffix: str

    def output_dir_for(self, threshold: int) -> Path:
        return Path(self.output_template.format(threshold=threshold))


@dataclass
class PipelineCfg:
    num_threads: int
    timeout_s: Optional[float]
    poll_interval_s: float
    no_documents_id: str
    show_progress: bool


@dataclass
class SpamToolConfig:
    collection: Optional[str]
    solr: SolrCfg
    paths: PathsCfg
    pipeline: PipelineCfg
    summary_path: Optional[Path]
    log_level: str


# ---------- loader ----------
def _pick(override: Optional[dict], section: dict, key: str, default=None):
    if override and override.get(key) is not None:
        return override[key]
    val = section.get(key)
    return default if val is None else val


def load_config(path: Optional[str | Path] = None, overrides: Optional[dict] = None) -> SpamToolConfig:
    """
    Build the tool configuration from an optional YAML file. Keys in `overrides`
    (flat, CLI-style: collection, base_url, core, num_threads, ...) win over the file.
    """
    data = read_yaml(path) if path else {}
    ov = {k: v for k, v in (overrides or {}).items() if v is not None}

    solr = data.get("solr", {}) or {}
    paths = data.get("paths", {}) or {}
    pipe = data.get("pipeline", {}) or {}
    report = data.get("report", {}) or {}

    collection = ov.get("collection", data.get("collection"))
    preset = COLLECTIONS.get(str(collection).upper()) if collection else None

    core = ov.get("core") or solr.get("core") or (preset.spam_core if preset else None)
    no_docs = ov.get("no_documents_id") or pipe.get("no_documents_id") or (preset.no_documents_id if preset else None)
    if not core or not no_docs:
        raise ConfigError(
            f"spam filtering is only applicable to ClueWeb09 and ClueWeb12 collections "
            f"(got collection={collection!r}); set solr.core and pipeline.no_documents_id explicitly"
        )

    collection_path = ov.get("collection_path") or paths.get("collection_path")
    input_dir = ov.get("input_dir") or paths.get("input_dir")
    output_template = ov.get("output_template") or paths.get("output_template")
    if collection_path:
        input_dir = input_dir or str(Path(collection_path) / INPUT_DIR_NAME)
        output_template = output_template or str(Path(collection_path) / OUTPUT_DIR_TEMPLATE)
    if not input_dir or not output_template:
        raise ConfigError("paths.collection_path or both paths.input_dir and paths.output_template are required")
    if "{threshold}" not in output_template:
        raise ConfigError(f"output_template must contain '{{threshold}}': {output_template}")

    num_threads = int(_pick(ov, pipe, "num_threads", 4))
    if num_threads < 1:
        raise ConfigError(f"num_threads must be >= 1, got {num_threads}")
    poll_interval_s = float(_pick(ov, pipe, "poll_interval_s", 10.0))
    if poll_interval_s <= 0:
        raise ConfigError(f"poll_interval_s must be > 0, got {poll_interval_s}")
    timeout_s = _pick(ov, pipe, "timeout_s", None)
    summary_path = ov.get("summary_path") or report.get("summary_path")

    return SpamToolConfig(
        collection=str(collection).upper() if collection else None,
        solr=SolrCfg(
            base_url=str(_pick(ov, solr, "base_url", "http://localhost:8983/solr")),
            core=str(core),
            query_field=solr.get("query_field") if "query_field" not in ov else ov["query_field"],
            timeout_s=float(ov.get("solr_timeout_s") or solr.get("timeout_s") or 30),
        ),
        paths=PathsCfg(
            input_dir=Path(input_dir),
            output_template=str(output_template),
            suffix=str(_pick(ov, paths, "suffix", ".txt")),
        ),
        pipeline=PipelineCfg(
            num_threads=num_threads,
            timeout_s=float(timeout_s) if timeout_s is not None else None,
            poll_interval_s=poll_interval_s,
            no_documents_id=str(no_docs),
            show_progress=bool(_pick(ov, pipe, "show_progress", True)),
        ),
        summary_path=Path(summary_path) if summary_path else None,
        log_level=str(_pick(ov, data, "log_level", "INFO")),
    )

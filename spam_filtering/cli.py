# spam_filtering/cli.py
from __future__ import annotations
import argparse
import sys
from functools import partial

from spam_filtering.application.process_file import process_submission_file
from spam_filtering.application.scheduler import run_pipeline
from spam_filtering.domain.errors import ConfigError
from spam_filtering.infrastructure.config import COLLECTIONS, SpamToolConfig, load_config
from spam_filtering.infrastructure.files import discover_text_files, write_json
from spam_filtering.infrastructure.logger import get_logger, set_level
from spam_filtering.infrastructure.solr_scores import SolrScoreLookup

logger = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        description="Filter TREC submission files with Waterloo spam rankings: "
                    "one run per spam percentile threshold 5..95."
    )
    ap.add_argument("--config", default=None, help="YAML config file (see configs/default.yaml)")
    ap.add_argument("--collection", choices=sorted(COLLECTIONS), default=None, help="Collection preset")
    ap.add_argument("--collection_path", default=None, help="Holds base_spam_runs/ and receives spam_<t>_runs/")
    ap.add_argument("--input_dir", default=None, help="Override the submission directory")
    ap.add_argument("--output_template", default=None, help="Output directory per threshold, e.g. out/spam_{threshold}_runs")
    ap.add_argument("--suffix", default=None, help="Submission file suffix (default .txt)")
    ap.add_argument("--solr_url", dest="base_url", default=None, help="Solr base url, e.g. http://host:8983/solr")
    ap.add_argument("--core", default=None, help="Solr core holding the percentiles")
    ap.add_argument("--query_field", default=None, help="Solr field matched against the doc id; empty string sends the bare id")
    ap.add_argument("--solr_timeout_s", type=float, default=None, help="Per request timeout for the spam service")
    ap.add_argument("--num_threads", type=int, default=None, help="Files processed concurrently (default 4)")
    ap.add_argument("--timeout_s", type=float, default=None, help="Global deadline in seconds")
    ap.add_argument("--poll_interval_s", type=float, default=None, help="Progress report interval in seconds")
    ap.add_argument("--no_documents_id", default=None, help="Placeholder doc id for topics without results")
    ap.add_argument("--summary_path", default=None, help="Write the run summary as JSON here")
    ap.add_argument("--no_progress", dest="show_progress", action="store_false", default=None)
    ap.add_argument("--log_level", default=None)
    return ap


def run(cfg: SpamToolConfig) -> int:
    files = discover_text_files(cfg.paths.input_dir, cfg.paths.suffix)
    scorer = SolrScoreLookup(cfg.solr.core_url, query_field=cfg.solr.query_field, timeout_s=cfg.solr.timeout_s)
    logger.info(f"spam scores from {cfg.solr.core_url}, outputs under {cfg.paths.output_template}")

    task = partial(_filter_one, cfg=cfg, scorer=scorer)
    try:
        report = run_pipeline(
            files,
            task,
            num_threads=cfg.pipeline.num_threads,
            timeout_s=cfg.pipeline.timeout_s,
            poll_interval_s=cfg.pipeline.poll_interval_s,
            show_progress=cfg.pipeline.show_progress,
        )
    finally:
        scorer.close()

    if cfg.summary_path:
        write_json(cfg.summary_path, report.to_dict())
        logger.info(f"summary written to {cfg.summary_path}")

    if report.interrupted:
        return 130
    return 0 if report.ok else 1


def _filter_one(path, cancel_event, cfg: SpamToolConfig, scorer: SolrScoreLookup):
    return process_submission_file(
        path,
        cfg.paths.input_dir,
        cfg.paths.output_dir_for,
        scorer,
        cfg.pipeline.no_documents_id,
        cancel_event=cancel_event,
    )


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    overrides = {k: v for k, v in vars(args).items() if k != "config"}
    try:
        cfg = load_config(args.config, overrides)
        set_level(cfg.log_level)
    except (ConfigError, ValueError, OSError) as e:
        logger.error(str(e))
        return 2
    try:
        return run(cfg)
    except FileNotFoundError as e:
        logger.error(str(e))
        return 2


if __name__ == "__main__":
    sys.exit(main())

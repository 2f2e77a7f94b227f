"""
lamcheck CLI
=============

Command-line interface for verifying a proof-carrying memory service.

Usage:
    python -m lamcheck run
    python -m lamcheck run --output outputs/certificate.json
    python -m lamcheck health
    python -m lamcheck export-schemas --output-dir schemas

Exit codes:
    0  full successful verification (or command completed)
    1  any hard failure; the message is printed to stderr
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from lamcheck.config import LamCheckConfig, get_config
from lamcheck.errors import LamCheckError
from lamcheck.utils import generate_run_id, setup_logging

logger = logging.getLogger("lamcheck.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lamcheck",
        description="lamcheck: end-to-end citation verification for proof-carrying memory",
    )
    parser.add_argument("--config", type=str, default=None, help="Path to config YAML")
    parser.add_argument("--verbose", "-v", action="store_true")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # ── run ─────────────────────────────────────────────────────
    run_parser = subparsers.add_parser("run", help="Run the full ingest → verify flow")
    run_parser.add_argument("--output", type=str, default=None, help="Write the certificate JSON here")

    # ── health ──────────────────────────────────────────────────
    subparsers.add_parser("health", help="Wait until the service reports ready")

    # ── export-schemas ──────────────────────────────────────────
    schema_parser = subparsers.add_parser("export-schemas", help="Export JSON schemas")
    schema_parser.add_argument("--output-dir", default="schemas")

    return parser


def main(argv: Optional[list[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    if args.command == "export-schemas":
        setup_logging(level="DEBUG" if args.verbose else "INFO")
        cmd_export_schemas(args)
        return

    try:
        config = get_config(args.config)
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)
    except LamCheckError as e:
        print(e.message, file=sys.stderr)
        sys.exit(1)

    args.run_id = generate_run_id()
    setup_logging(
        level="DEBUG" if args.verbose else config.log_level,
        format_style=config.log_format,
        run_id=args.run_id,
    )

    try:
        if args.command == "run":
            cmd_run(args, config)
        elif args.command == "health":
            cmd_health(args, config)
    except LamCheckError as e:
        logger.debug(f"{e.kind.value} failure", exc_info=True)
        print(e.message, file=sys.stderr)
        sys.exit(1)


def cmd_run(args, config: LamCheckConfig) -> None:
    """Run the full verification flow."""
    from lamcheck.pipeline import DemoPipeline

    with DemoPipeline(config, run_id=args.run_id) as pipeline:
        result = pipeline.run()

    if args.output:
        from lamcheck.render.certificate import CertificateBuilder

        path = CertificateBuilder(config).export_json(result.certificate, args.output)
        pipeline.reporter.note(f"Certificate saved to {path}")


def cmd_health(args, config: LamCheckConfig) -> None:
    """Wait for readiness only."""
    from lamcheck.pipeline import DemoPipeline

    with DemoPipeline(config, run_id=args.run_id) as pipeline:
        body = pipeline.wait_ready()
    pipeline.reporter.note(f"Ready: {json.dumps(body, sort_keys=True)}")


def cmd_export_schemas(args) -> None:
    """Export JSON schemas for the wire contracts and the certificate."""
    from lamcheck.schemas import (
        ContextQuery,
        DecodedSpan,
        IngestRequest,
        KeyRequest,
        VerificationCertificate,
    )

    schemas = {
        "key_request": KeyRequest,
        "ingest_request": IngestRequest,
        "context_query": ContextQuery,
        "decoded_span": DecodedSpan,
        "verification_certificate": VerificationCertificate,
    }

    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    for name, model in schemas.items():
        path = output_dir / f"{name}.json"
        with open(path, "w") as f:
            json.dump(model.model_json_schema(), f, indent=2)
        print(f"Exported: {path}")

    print(f"\n{len(schemas)} schemas exported to {output_dir}/")


if __name__ == "__main__":
    main()

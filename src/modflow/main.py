"""
Modflow command line
====================

Runs the moderation workflow against the local submission store.

    modflow submit --type text --text "hello world"
    modflow submit --type image --image-url https://example.com/cat.png --text "my cat"
    modflow run <submission_id>
    modflow show <submission_id>
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Sequence

from dotenv import load_dotenv

from modflow.ai.ai_clients import get_ai_clients
from modflow.ai.analysis import ModerationCapabilities
from modflow.configuration.app_configuration import app_config
from modflow.database.db_connection import ConnectionManager
from modflow.datatypes.moderation_datatypes import SubmissionType
from modflow.exceptions import SubmissionNotFoundError
from modflow.moderation.moderation_pipeline import build_default_pipeline
from modflow.repositories.submission_repo import SubmissionRepository
from modflow.services.moderation_service import ModerationService
from modflow.storage.blob_store import LocalBlobStore
from modflow.util.logger import get_logger

logger = get_logger("main")


def load_environment() -> None:
    """Load environment variables from ``.env`` in the working directory."""
    load_dotenv(dotenv_path=Path(os.getcwd()) / ".env")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="modflow", description="AI content moderation workflow")
    subparsers = parser.add_subparsers(dest="command", required=True)

    submit = subparsers.add_parser("submit", help="create a submission and moderate it")
    submit.add_argument("--type", choices=[t.value for t in SubmissionType], required=True)
    submit.add_argument("--text", default=None, help="submitted text content")
    submit.add_argument("--image-url", default=None, help="public URL of the submitted image")

    run = subparsers.add_parser("run", help="moderate an existing submission")
    run.add_argument("submission_id")

    show = subparsers.add_parser("show", help="print a stored submission")
    show.add_argument("submission_id")

    return parser


def build_service(repo: SubmissionRepository) -> ModerationService:
    """Wire the moderation service from the application configuration."""
    ai_settings = app_config.ai_settings
    moderation_settings = app_config.moderation_settings
    capabilities = ModerationCapabilities(get_ai_clients(), timeout=ai_settings.request_timeout_seconds)
    return ModerationService(
        store=repo,
        blob_store=LocalBlobStore(app_config.blob_directory, app_config.public_base_url),
        pipeline=build_default_pipeline(capabilities, moderation_settings),
        settings=moderation_settings,
    )


def _print_json(payload: dict) -> None:
    print(json.dumps(payload, indent=2, default=str))


async def run_command(args: argparse.Namespace) -> int:
    db = ConnectionManager()
    await db.open(app_config.database_path)
    repo = SubmissionRepository(db)
    try:
        if args.command == "show":
            submission = await repo.fetch_by_id(args.submission_id)
            if submission is None:
                logger.error("Submission %s not found", args.submission_id)
                return 1
            _print_json(asdict(submission))
            return 0

        service = build_service(repo)
        if args.command == "submit":
            if not args.text and not args.image_url:
                logger.error("A submission needs --text or --image-url")
                return 2
            submission = await repo.create(SubmissionType(args.type), args.text, args.image_url)
            submission_id = submission.submission_id
        else:
            submission_id = args.submission_id

        try:
            result = await service.run_moderation(submission_id)
        except SubmissionNotFoundError as exc:
            logger.error("%s", exc)
            return 1
        _print_json(result.to_dict())
        return 0
    finally:
        await db.close()


def main(argv: Sequence[str] | None = None) -> int:
    """Parse arguments and run the requested command."""
    load_environment()
    args = build_parser().parse_args(list(argv) if argv is not None else None)
    try:
        return asyncio.run(run_command(args))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())

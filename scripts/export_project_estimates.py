"""
Export the estimation history of a project from Firestore to JSON.

Intended for inspecting saved estimates locally (especially with the Firestore emulator).

Usage (Firestore emulator):
  export FIRESTORE_EMULATOR_HOST="127.0.0.1:8080"
  export GCLOUD_PROJECT="cwicr-dev"
  python scripts/export_project_estimates.py --project-id proj-123 --limit 5 --out history.json
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
import socket
from datetime import datetime, timezone
from typing import Any, Dict, List


def _check_emulator_reachable() -> None:
    """Fail fast if FIRESTORE_EMULATOR_HOST is set but not reachable.

    firebase-admin will otherwise block on network calls which feels like a hang.
    """
    host = os.environ.get("FIRESTORE_EMULATOR_HOST")
    if not host or ":" not in host:
        return
    h, p = host.rsplit(":", 1)
    try:
        port = int(p)
    except ValueError:
        return

    try:
        with socket.create_connection((h, port), timeout=1.5):
            return
    except OSError as e:
        raise RuntimeError(
            f"FIRESTORE_EMULATOR_HOST is set to '{host}' but it's not reachable. "
            f"Is the Firestore emulator running? Underlying error: {e}"
        )


async def _load_history(project_id: str, limit: int) -> List[Dict[str, Any]]:
    from cwicr_estimation.services.estimate_repository import EstimateRepository

    summaries = await EstimateRepository().list_project_estimates(project_id, limit)
    return [summary.model_dump(by_alias=True, mode="json") for summary in summaries]


def main() -> int:
    parser = argparse.ArgumentParser(description="Export a project's saved estimations to JSON")
    parser.add_argument("--project-id", required=True, help="Project ID whose estimations to export")
    parser.add_argument("--limit", type=int, default=20, help="Maximum number of estimations (newest first)")
    parser.add_argument("--out", required=False, help="Output file path (defaults to ./estimations-export.json)")
    parser.add_argument(
        "--gcp-project",
        required=False,
        help="GCP/Firebase project id (if not set, uses GCLOUD_PROJECT / FIREBASE_PROJECT_ID)",
    )
    args = parser.parse_args()

    out_path = args.out or "estimations-export.json"
    gcp_project = (
        args.gcp_project
        or os.environ.get("GCLOUD_PROJECT")
        or os.environ.get("FIREBASE_PROJECT_ID")
        or "cwicr-dev"
    )

    # Import firebase_admin lazily so this script can still display help without deps.
    import firebase_admin

    try:
        _check_emulator_reachable()
    except RuntimeError as e:
        print(str(e))
        return 3

    if not firebase_admin._apps:
        # For emulator usage, credentials are not required. Providing projectId helps routing.
        firebase_admin.initialize_app(options={"projectId": gcp_project})

    estimations = asyncio.run(_load_history(args.project_id, args.limit))

    export = {
        "projectId": args.project_id,
        "exportedAt": datetime.now(timezone.utc).isoformat(),
        "estimationCount": len(estimations),
        "estimations": estimations,
    }

    with open(out_path, "w", encoding="utf-8") as f:
        json.dump(export, f, indent=2, sort_keys=True)

    print(f"Wrote {len(estimations)} estimations to {out_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

"""
Audit trail for fleet deploys.

One JSON line per action, appended to a file chosen in the deployer settings.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)


def audit_deployment_action(
    action: str,
    version: str,
    path: Optional[Union[str, Path]],
    details: Optional[Dict[str, Any]] = None,
    success: Optional[bool] = None,
) -> None:
    """
    Append a deployment action to the audit log.

    Does nothing when no path is configured. Write failures are logged and
    otherwise ignored.

    Args:
        action: Action taken (deploy_started, deploy_completed, ...)
        version: Version being deployed
        path: Audit log file (JSONL)
        details: Additional details about the action
        success: Outcome, for completion actions
    """
    if not path:
        return

    try:
        audit_path = Path(path).expanduser()
        audit_path.parent.mkdir(parents=True, exist_ok=True)

        audit_entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "action": action,
            "version": version,
            "details": details or {},
        }

        if success is not None:
            audit_entry["success"] = success

        with open(audit_path, "a") as f:
            f.write(json.dumps(audit_entry, default=str) + "\n")

        logger.debug(f"Audit: {action} {version}")

    except OSError as e:
        logger.error(f"Failed to write audit log: {e}")

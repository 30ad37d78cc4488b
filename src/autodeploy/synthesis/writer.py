"""Write a synthesized bundle into a fresh, timestamped output directory."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..schemas.plan import InfrastructurePlan
from .synthesizer import TemplateBundle

logger = logging.getLogger(__name__)


def _fresh_directory(output_root: Path, now: datetime) -> Path:
    base = f"deployment_{now.strftime('%Y%m%d_%H%M%S')}"
    candidate = output_root / base
    suffix = 1
    while True:
        try:
            candidate.mkdir(parents=False, exist_ok=False)
            return candidate
        except FileExistsError:
            suffix += 1
            candidate = output_root / f"{base}_{suffix}"


def write_bundle(
    bundle: TemplateBundle,
    output_root: str | Path,
    plan: Optional[InfrastructurePlan] = None,
    now: Optional[datetime] = None,
) -> Path:
    """Write main.tf, variables.tf and outputs.tf; return the new directory.

    An existing deployment directory is never reused. When ``plan`` is given,
    it is saved alongside as plan.json for review.
    """
    root = Path(output_root)
    root.mkdir(parents=True, exist_ok=True)
    target = _fresh_directory(root, now or datetime.now())

    for filename, content in bundle.files().items():
        (target / filename).write_text(content)
    if plan is not None:
        (target / "plan.json").write_text(plan.model_dump_json(indent=2))

    logger.info(f"Wrote Terraform configuration to {target}")
    return target

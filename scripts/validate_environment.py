#!/usr/bin/env python3
"""Validate local plan generator environment readiness."""

from __future__ import annotations

import importlib
import random
import shutil
import sys
import tempfile
from dataclasses import replace
from datetime import date
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from plan_generator.domain.models import PlanRequest
from plan_generator.repository.data_repository import DataRepository
from plan_generator.services.plan_service import PlanGenerationService
from plan_generator.utils.config import get_settings

SEPARATOR_LINE = "=" * 44


def _print_result(name: str, success: bool, detail: str = "") -> tuple[bool, str]:
    if success:
        return True, f"[PASS] {name}{detail}"
    return False, f"[FAIL] {name}: {detail}"


def main() -> int:
    results: list[str] = []
    all_passed = True
    temp_dir = tempfile.mkdtemp(prefix="plan-generator-env-")

    # CHECK 1: Python version >= 3.10
    if sys.version_info >= (3, 10):
        ok, line = _print_result("Python " + sys.version.split()[0], True)
    else:
        ok, line = _print_result(
            "Python version >= 3.10",
            False,
            f"found {sys.version.split()[0]}",
        )
    results.append(line)
    all_passed = all_passed and ok

    # CHECK 2: Required packages importable
    package_names = ["fastapi", "uvicorn", "pydantic", "dotenv", "httpx", "pytest"]
    import_errors: list[str] = []
    for module_name in package_names:
        try:
            importlib.import_module(module_name)
        except ImportError as exc:
            import_errors.append(f"{module_name} ({exc})")
    if import_errors:
        ok, line = _print_result(
            "Required packages",
            False,
            "missing/unimportable -> " + "; ".join(import_errors),
        )
    else:
        ok, line = _print_result("Required packages: all importable", True)
    results.append(line)
    all_passed = all_passed and ok

    try:
        validation_settings = replace(
            get_settings(),
            database_path=Path(temp_dir) / "plan_generator_validation.db",
        )
        repository = DataRepository(validation_settings)

        # CHECK 3: Database initialization
        try:
            repository.initialize_database()
            ok, line = _print_result("Database initialization", True)
        except Exception as exc:
            ok, line = _print_result("Database initialization", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 4: Demo topology seeding
        try:
            repository.seed_demo_data()
            node_count = len(repository.list_active_topology(validation_settings.demo_account_id))
            if node_count == 0:
                raise RuntimeError("no active nodes after seeding")
            ok, line = _print_result("Demo topology", True, f": {node_count} nodes")
        except Exception as exc:
            ok, line = _print_result("Demo topology", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

        # CHECK 5: Plan generation smoke run
        try:
            service = PlanGenerationService(
                repository=repository,
                settings=validation_settings,
                rng=random.Random(7),
            )
            today = date.today()
            plan = service.generate(
                PlanRequest(
                    account_id=validation_settings.demo_account_id,
                    carrier_id=validation_settings.demo_carrier_id,
                    product_id=validation_settings.demo_product_id,
                    start_date=today.replace(month=1, day=1),
                    end_date=today.replace(month=3, day=31),
                    annual_target=1200,
                    max_events_per_week=5,
                    merge_strategy="add",
                    requested_by=1,
                )
            )
            ok, line = _print_result(
                "Plan generation",
                True,
                f": {len(plan.events)} events, {plan.total_unassigned} unassigned",
            )
        except Exception as exc:
            ok, line = _print_result("Plan generation", False, str(exc))
        results.append(line)
        all_passed = all_passed and ok

    finally:
        shutil.rmtree(temp_dir, ignore_errors=True)

    print(SEPARATOR_LINE)
    print(" Plan Generator Environment Validation")
    print(SEPARATOR_LINE)
    for line in results:
        print(f" {line}")
    print(SEPARATOR_LINE)
    if all_passed:
        print(" All checks passed. Environment is ready.")
        print(SEPARATOR_LINE)
        return 0
    print(" One or more checks failed.")
    print(SEPARATOR_LINE)
    return 1


if __name__ == "__main__":
    raise SystemExit(main())

"""Folding compiled contracts into one result mapping."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from pathlib import Path

from smartpy_build.errors import NameCollisionError
from smartpy_build.models import ContractRecord
from smartpy_build.profiler import contract_name


def check_unique_names(paths: Iterable[str | Path]) -> None:
    """Fail if two source paths resolve to the same contract name.

    Raises:
        NameCollisionError: For the first name claimed by more than one path.
    """
    by_name: dict[str, list[str]] = defaultdict(list)
    for path in paths:
        by_name[contract_name(path)].append(str(path))

    for name, sources in by_name.items():
        if len(sources) > 1:
            raise NameCollisionError(name, sources)


def aggregate(records: Iterable[ContractRecord]) -> dict[str, ContractRecord]:
    """Build the contract-name mapping, preserving compile order.

    Raises:
        NameCollisionError: If two records share a contract name.
    """
    result: dict[str, ContractRecord] = {}
    for record in records:
        existing = result.get(record.contract_name)
        if existing is not None:
            raise NameCollisionError(
                record.contract_name,
                [existing.source_path, record.source_path],
            )
        result[record.contract_name] = record
    return result

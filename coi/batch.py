"""
Пакетный пересчёт COI:
    * порядок – топологический (предки раньше потомков);
    * ошибка по одному животному логируется и не останавливает прогон.
"""
from __future__ import annotations
import logging
from collections import deque
from typing import Callable, Dict, Iterable, List

import pandas as pd
from tqdm import tqdm

from .kinship import DEFAULT_GENERATIONS, compute_coi
from .repository import AncestryRepository, CachedRepository

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
LOGGER = logging.getLogger(__name__)

PROGRESS_EVERY = 50

Persist = Callable[[str, float], None]


def topological_order(repository: AncestryRepository, ids: Iterable[str]) -> List[str]:
    """
    Kahn: сначала основатели, затем потомки. Животные из циклов и с
    родителями вне набора уходят в конец в исходном порядке.
    """
    ids = [str(i) for i in ids]
    known = set(ids)
    children: Dict[str, List[str]] = {}
    in_degree = {i: 0 for i in ids}

    for animal_id in ids:
        record = repository.get(animal_id)
        if record is None:
            continue
        for parent in (record.sire_id, record.dam_id):
            if parent and parent in known:
                children.setdefault(parent, []).append(animal_id)
                in_degree[animal_id] += 1

    queue = deque(i for i in ids if in_degree[i] == 0)
    order: List[str] = []
    while queue:
        animal_id = queue.popleft()
        order.append(animal_id)
        for child in children.get(animal_id, []):
            in_degree[child] -= 1
            if in_degree[child] == 0:
                queue.append(child)

    placed = set(order)
    leftover = [i for i in ids if i not in placed]
    if leftover:
        LOGGER.warning("⚠️  %d animals sit on pedigree cycles, processed last", len(leftover))
    return order + leftover


def recalculate(
    repository: AncestryRepository,
    ids: Iterable[str] | None = None,
    max_generations: int = DEFAULT_GENERATIONS,
    use_known: bool = False,
    dry_run: bool = False,
    persist: Persist | None = None,
) -> pd.DataFrame:
    """
    Пересчитывает COI для ``ids`` (по умолчанию – для всех животных
    хранилища в топологическом порядке) и сохраняет через ``persist``.

    Возвращает таблицу (id, previous, coi, changed, error).
    """
    if ids is None:
        if not hasattr(repository, "ids"):
            raise ValueError("repository cannot list ids, pass them explicitly")
        order = topological_order(repository, repository.ids())
    else:
        order = [str(i) for i in ids]

    if persist is None and hasattr(repository, "update_coefficient"):
        persist = repository.update_coefficient

    # без persist писать некуда – ведём себя как dry-run
    writes = persist is not None and not dry_run

    reader = repository if isinstance(repository, CachedRepository) else CachedRepository(repository)

    LOGGER.info("📦  Processing %d animals …", len(order))
    rows = []
    updated = errors = 0
    for processed, animal_id in enumerate(tqdm(order, desc="coi"), start=1):
        previous = None
        try:
            record = reader.get(animal_id)
            previous = record.known_coefficient if record is not None else None
            coi = compute_coi(animal_id, reader, max_generations, use_known=use_known)
            if writes:
                persist(animal_id, coi)
                # записанный COI должны увидеть потомки
                reader.invalidate(animal_id)
        except Exception as exc:
            errors += 1
            LOGGER.error("[ERROR] %s: %s", animal_id, exc)
            rows.append((animal_id, previous, None, False, str(exc)))
            continue

        changed = previous != coi
        if not writes:
            if changed:
                LOGGER.info("[DRY] %s: %s → %s", animal_id, _fmt(previous), coi)
        else:
            if changed:
                updated += 1
                LOGGER.info("[UPDATED] %s: %s → %s", animal_id, _fmt(previous), coi)
        rows.append((animal_id, previous, coi, changed, None))

        if processed % PROGRESS_EVERY == 0:
            LOGGER.info("  … %d/%d processed, %d updated, %d errors",
                        processed, len(order), updated, errors)

    LOGGER.info("✅  Done. Processed: %d, Updated: %d, Errors: %d",
                len(order), updated, errors)
    if not writes:
        LOGGER.info("(dry-run — no changes saved)")
    elif hasattr(repository, "missing_coefficients"):
        LOGGER.info("Remaining without COI: %d", repository.missing_coefficients())

    return pd.DataFrame(rows, columns=["id", "previous", "coi", "changed", "error"])


def recalculate_ids(
    repository: AncestryRepository,
    ids: Iterable[str],
    max_generations: int = DEFAULT_GENERATIONS,
    persist: Persist | None = None,
) -> pd.DataFrame:
    """Фиксированный список животных, строго в заданном порядке."""
    return recalculate(repository, ids=list(ids), max_generations=max_generations,
                       persist=persist)


def _fmt(value: float | None) -> str:
    return "null" if value is None else str(value)

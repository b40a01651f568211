"""
Инбридинг (F) по методу путей Райта, 1922.

F = Σ (½)^(n1 + n2 + 1) · (1 + F_A)

где n1/n2 – число звеньев от отца/матери до общего предка A.
Пути здесь хранятся как кортежи узлов (оба конца включительно), поэтому
len(path) = n + 1 и показатель степени равен len(p) + len(q) − 1.

* ``compute_coi``          – COI животного по его родословной;
* ``compute_pairing_coi``  – COI гипотетического потомка пары;
* ``explain_pairing``      – то же с разбивкой по общим предкам;
* ``build_feasible_pairs`` – допустимые пары sires × dams по порогу COI.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import List

import numpy as np
import pandas as pd
from numba import njit

from .pedigree import (
    Path,
    PedigreeCache,
    PedigreeNode,
    ancestor_ids,
    build_pedigree,
    find_paths,
    unique_ancestors,
)
from .repository import AncestryRepository

LOGGER = logging.getLogger(__name__)

DEFAULT_GENERATIONS = 8
PAIRING_GENERATIONS = 5
THEORETICAL_ID = "theoretical"


@dataclass
class PathPair:
    sire_path: Path
    dam_path: Path
    sire_links: int
    dam_links: int
    contribution: float  # в процентах


@dataclass
class AncestorContribution:
    ancestor_id: str
    ancestor_name: str
    ancestor_inbreeding: float  # в процентах
    contribution: float         # в процентах
    path_pairs: List[PathPair] = field(default_factory=list)


@dataclass
class CoiExplanation:
    total: float
    breakdown: List[AncestorContribution] = field(default_factory=list)


def _check_generations(max_generations: int) -> None:
    if max_generations < 0:
        raise ValueError(f"max_generations must be non-negative, got {max_generations}")


def common_ancestors(root: PedigreeNode | None) -> List[PedigreeNode]:
    """Общие предки линий отца и матери, в порядке первого появления у отца."""
    if root is None or root.sire is None or root.dam is None:
        return []
    dam_ids = ancestor_ids(root.dam)
    return [a for a in unique_ancestors(root.sire) if a.id in dam_ids]


def _path_lengths(paths: List[Path]) -> np.ndarray:
    return np.fromiter((len(p) for p in paths), dtype=np.int64, count=len(paths))


def wright_sum(root: PedigreeNode | None) -> float:
    """Σ вкладов по всем общим предкам и всем парам путей (доля, без округления)."""
    total = 0.0
    for ancestor in common_ancestors(root):
        sire_len = _path_lengths(find_paths(root.sire, ancestor.id))
        dam_len = _path_lengths(find_paths(root.dam, ancestor.id))
        if sire_len.size == 0 or dam_len.size == 0:
            continue
        # сетка показателей len(p) + len(q) − 1 для всех пар
        exponents = np.add.outer(sire_len, dam_len) - 1
        total += float(np.power(0.5, exponents).sum()) * (1.0 + ancestor.inbreeding)
    return total


def _as_percent(total: float, ndigits: int) -> float:
    # пересекающиеся пути на «грязных» данных могут дать > 1
    return round(min(max(total, 0.0), 1.0) * 100, ndigits)


def compute_coi(
    animal_id: str | None,
    repository: AncestryRepository,
    max_generations: int = DEFAULT_GENERATIONS,
    use_known: bool = False,
) -> float:
    """
    COI животного в процентах (0…100, 2 знака).

    Строится дерево на ``max_generations`` поколений над животным.
    Без обоих родителей или без общих предков → 0.0.
    """
    _check_generations(max_generations)
    if not animal_id:
        return 0.0
    root = build_pedigree(
        animal_id, max_generations + 1, repository, PedigreeCache(), use_known=use_known
    )
    if root is None or root.sire is None or root.dam is None:
        return 0.0
    return _as_percent(wright_sum(root), 2)


def _theoretical_root(
    sire_id: str,
    dam_id: str,
    repository: AncestryRepository,
    max_generations: int,
    use_known: bool,
) -> PedigreeNode:
    cache = PedigreeCache()
    return PedigreeNode(
        id=THEORETICAL_ID,
        display_name="Theoretical Offspring",
        sire=build_pedigree(sire_id, max_generations, repository, cache, use_known),
        dam=build_pedigree(dam_id, max_generations, repository, cache, use_known),
    )


def compute_pairing_coi(
    sire_id: str | None,
    dam_id: str | None,
    repository: AncestryRepository,
    max_generations: int = PAIRING_GENERATIONS,
    use_known: bool = False,
) -> float:
    """COI гипотетического потомка sire × dam, в процентах (4 знака)."""
    _check_generations(max_generations)
    if not sire_id or not dam_id:
        return 0.0
    root = _theoretical_root(sire_id, dam_id, repository, max_generations, use_known)
    return _as_percent(wright_sum(root), 4)


def _explain(root: PedigreeNode | None) -> CoiExplanation:
    breakdown: List[AncestorContribution] = []
    total = 0.0
    for ancestor in common_ancestors(root):
        fa = ancestor.inbreeding
        item = AncestorContribution(
            ancestor_id=ancestor.id,
            ancestor_name=ancestor.display_name,
            ancestor_inbreeding=round(fa * 100, 4),
            contribution=0.0,
        )
        share = 0.0
        for s_path in find_paths(root.sire, ancestor.id):
            for d_path in find_paths(root.dam, ancestor.id):
                term = 0.5 ** (len(s_path) + len(d_path) - 1) * (1 + fa)
                share += term
                item.path_pairs.append(PathPair(
                    sire_path=s_path,
                    dam_path=d_path,
                    sire_links=len(s_path) - 1,
                    dam_links=len(d_path) - 1,
                    contribution=round(term * 100, 4),
                ))
        item.contribution = round(share * 100, 4)
        total += share
        breakdown.append(item)

    breakdown.sort(key=lambda a: -a.contribution)
    return CoiExplanation(total=_as_percent(total, 4), breakdown=breakdown)


def explain_pairing(
    sire_id: str | None,
    dam_id: str | None,
    repository: AncestryRepository,
    max_generations: int = PAIRING_GENERATIONS,
    use_known: bool = False,
) -> CoiExplanation:
    """Разбивка COI пары по общим предкам (крупнейшие вклады первыми)."""
    _check_generations(max_generations)
    if not sire_id or not dam_id:
        return CoiExplanation(total=0.0)
    root = _theoretical_root(sire_id, dam_id, repository, max_generations, use_known)
    return _explain(root)


def explain_coi(
    animal_id: str | None,
    repository: AncestryRepository,
    max_generations: int = DEFAULT_GENERATIONS,
    use_known: bool = False,
) -> CoiExplanation:
    """Разбивка COI существующего животного."""
    _check_generations(max_generations)
    if not animal_id:
        return CoiExplanation(total=0.0)
    root = build_pedigree(animal_id, max_generations + 1, repository, use_known=use_known)
    return _explain(root)


@njit(cache=True)
def _filter_pairs_numba(coi_mat: np.ndarray, coi_threshold: float):
    rows_sire = []
    rows_dam = []
    rows_coi = []
    nsires, ndams = coi_mat.shape
    for j in range(nsires):
        for i in range(ndams):
            if coi_mat[j, i] <= coi_threshold:
                rows_sire.append(j)
                rows_dam.append(i)
                rows_coi.append(coi_mat[j, i])
    return (
        np.asarray(rows_sire, dtype=np.int32),
        np.asarray(rows_dam, dtype=np.int32),
        np.asarray(rows_coi, dtype=np.float64),
    )


def build_feasible_pairs(
    sires: pd.DataFrame,
    dams: pd.DataFrame,
    repository: AncestryRepository,
    coi_threshold: float = 6.25,
    max_generations: int = PAIRING_GENERATIONS,
) -> pd.DataFrame:
    """Таблица допустимых пар (sire_id, dam_id, coi) с COI потомка ≤ порога."""
    sire_ids = sires["id"].astype(str).to_numpy()
    dam_ids = dams["id"].astype(str).to_numpy()

    # матрица COI потомков sires × dams
    coi_mat = np.zeros((sire_ids.shape[0], dam_ids.shape[0]), dtype=np.float64)
    for j, sid in enumerate(sire_ids):
        for i, did in enumerate(dam_ids):
            coi_mat[j, i] = compute_pairing_coi(sid, did, repository, max_generations)

    sire_idx, dam_idx, coi = _filter_pairs_numba(coi_mat, float(coi_threshold))
    LOGGER.info("🔍  %d of %d pairs within COI ≤ %.2f%%",
                len(coi), coi_mat.size, coi_threshold)

    return (
        pd.DataFrame(
            {
                "sire_id": sire_ids[sire_idx],
                "dam_id": dam_ids[dam_idx],
                "coi": coi,
            }
        )
        .sort_values(["coi", "sire_id", "dam_id"], kind="mergesort")
        .reset_index(drop=True)
    )


"""
Коэффициент инбридинга (COI) по Райту для неполных и «грязных» родословных.
"""
from .kinship import (
    CoiExplanation,
    build_feasible_pairs,
    compute_coi,
    compute_pairing_coi,
    explain_coi,
    explain_pairing,
)
from .pedigree import PedigreeNode, build_pedigree, collect_ancestors, find_paths
from .repository import (
    AncestryRecord,
    CachedRepository,
    DataFrameRepository,
    DictRepository,
    FallbackRepository,
    RepositoryError,
)

__all__ = [
    "AncestryRecord",
    "CachedRepository",
    "CoiExplanation",
    "DataFrameRepository",
    "DictRepository",
    "FallbackRepository",
    "PedigreeNode",
    "RepositoryError",
    "build_feasible_pairs",
    "build_pedigree",
    "collect_ancestors",
    "compute_coi",
    "compute_pairing_coi",
    "explain_coi",
    "explain_pairing",
    "find_paths",
]

"""
Построение дерева предков и обход по нему.

* ``build_pedigree``    – рекурсивная материализация дерева на N поколений
  с мемоизацией в пределах одного вызова и разрывом циклов;
* ``collect_ancestors`` – плоский список узлов поддерева (pre-order);
* ``find_paths``        – все пути от корня поддерева до заданного предка.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Dict, List, Set, Tuple

from .repository import AncestryRepository

LOGGER = logging.getLogger(__name__)

Path = Tuple[str, ...]


@dataclass(frozen=True)
class PedigreeNode:
    id: str
    display_name: str
    sire: "PedigreeNode | None" = None
    dam: "PedigreeNode | None" = None
    inbreeding: float = 0.0  # доля, 0…1

    @property
    def is_terminal(self) -> bool:
        return self.sire is None and self.dam is None


class PedigreeCache:
    """
    Кэш одного построения: id → Unvisited | InProgress | Resolved.

    Готовые узлы хранятся по ключу (id, оставшаяся глубина), чтобы
    переиспользованное поддерево не выходило за лимит поколений.
    Между разными корнями кэш не переиспользуется.
    """

    def __init__(self) -> None:
        self._in_progress: Set[str] = set()
        self._resolved: Dict[Tuple[str, int], PedigreeNode | None] = {}

    def in_progress(self, animal_id: str) -> bool:
        return animal_id in self._in_progress

    def lookup(self, animal_id: str, depth: int) -> Tuple[bool, PedigreeNode | None]:
        key = (animal_id, depth)
        if key in self._resolved:
            return True, self._resolved[key]
        return False, None

    def start(self, animal_id: str) -> None:
        self._in_progress.add(animal_id)

    def resolve(self, animal_id: str, depth: int, node: PedigreeNode | None) -> None:
        self._in_progress.discard(animal_id)
        self._resolved[(animal_id, depth)] = node

    def __len__(self) -> int:
        return len(self._resolved)


def build_pedigree(
    animal_id: str | None,
    depth: int,
    repository: AncestryRepository,
    cache: PedigreeCache | None = None,
    use_known: bool = False,
) -> PedigreeNode | None:
    """
    Дерево предков ``animal_id`` глубиной ``depth`` (корень – уровень 1).

    Неизвестные родители и циклы дают ``None`` вместо поддерева, а не
    исключение. Ошибки хранилища пробрасываются наружу.
    При ``use_known`` узел берёт ``inbreeding`` из сохранённого COI предка.
    """
    if depth < 0:
        raise ValueError(f"depth must be non-negative, got {depth}")
    if cache is None:
        cache = PedigreeCache()
    return _build(animal_id, depth, repository, cache, use_known)


def _build(animal_id, depth, repository, cache, use_known):
    if depth == 0 or animal_id is None or str(animal_id) == "":
        return None
    animal_id = str(animal_id)

    if cache.in_progress(animal_id):
        LOGGER.debug("Pedigree cycle at %s, branch treated as unknown", animal_id)
        return None
    found, node = cache.lookup(animal_id, depth)
    if found:
        return node

    cache.start(animal_id)
    record = repository.get(animal_id)
    if record is None:
        cache.resolve(animal_id, depth, None)
        return None

    sire = _build(record.sire_id, depth - 1, repository, cache, use_known)
    dam = _build(record.dam_id, depth - 1, repository, cache, use_known)

    inbreeding = 0.0
    if use_known and record.known_coefficient is not None:
        inbreeding = min(max(record.known_coefficient / 100.0, 0.0), 1.0)

    node = PedigreeNode(
        id=animal_id,
        display_name=record.display_name or animal_id,
        sire=sire,
        dam=dam,
        inbreeding=inbreeding,
    )
    cache.resolve(animal_id, depth, node)
    return node


def collect_ancestors(node: PedigreeNode | None) -> List[PedigreeNode]:
    """Сам узел, затем поддерево отца, затем поддерево матери."""
    out: List[PedigreeNode] = []

    def walk(n: PedigreeNode | None) -> None:
        if n is None:
            return
        out.append(n)
        walk(n.sire)
        walk(n.dam)

    walk(node)
    return out


def unique_ancestors(node: PedigreeNode | None) -> List[PedigreeNode]:
    # первый встреченный экземпляр на каждый id
    seen: Dict[str, PedigreeNode] = {}
    for n in collect_ancestors(node):
        seen.setdefault(n.id, n)
    return list(seen.values())


def ancestor_ids(node: PedigreeNode | None) -> Set[str]:
    return {n.id for n in collect_ancestors(node)}


def find_paths(root: PedigreeNode | None, target_id: str) -> List[Path]:
    """
    Все пути (кортежи id, оба конца включительно) от ``root`` до
    ``target_id``. Один предок может оказаться в конце нескольких путей,
    если родословная «схлопывается».
    """
    paths: List[Path] = []

    def walk(n: PedigreeNode | None, prefix: Path) -> None:
        if n is None:
            return
        path = prefix + (n.id,)
        if n.id == target_id:
            paths.append(path)
            return
        walk(n.sire, path)
        walk(n.dam, path)

    walk(root, ())
    return paths

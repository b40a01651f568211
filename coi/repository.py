"""
Доступ к родословным записям (только чтение).

Ядро расчёта знает о хранилище только одну вещь: ``get(id)`` → запись
или ``None``. Здесь собраны адаптеры:
* ``DictRepository``      – словарь в памяти (тесты, мелкие скрипты);
* ``DataFrameRepository`` – pandas-таблица из pedigree.csv;
* ``FallbackRepository``  – основной источник, затем публичный;
* ``CachedRepository``    – мемо чтений с явной инвалидацией.
"""
from __future__ import annotations
import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Protocol, Tuple

import pandas as pd

# первый непустой столбец побеждает
SIRE_COLUMNS = ("sire_id", "father_id")
DAM_COLUMNS = ("dam_id", "mother_id")
NAME_COLUMNS = ("name", "display_name")
COI_COLUMNS = ("inbreeding", "known_coefficient")


class RepositoryError(RuntimeError):
    """Ошибка ввода-вывода при чтении записи."""


@dataclass(frozen=True)
class AncestryRecord:
    id: str
    sire_id: str | None = None
    dam_id: str | None = None
    display_name: str = ""
    known_coefficient: float | None = None  # в процентах, 0…100


class AncestryRepository(Protocol):
    def get(self, animal_id: str) -> AncestryRecord | None: ...


def _clean(value: Any) -> Any:
    """Пустые строки, None и NaN считаем «неизвестно»."""
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _first(row: Mapping[str, Any], columns: Iterable[str]) -> Any:
    for col in columns:
        val = _clean(row.get(col))
        if val is not None:
            return val
    return None


def record_from_row(animal_id: str, row: Mapping[str, Any] | Tuple) -> AncestryRecord:
    """
    Приводит «сырую» запись к ``AncestryRecord``.

    ``row`` – либо словарь (sire_id/dam_id или father_id/mother_id),
    либо кортеж (mother, father), как в старом формате ``PedigreeType``.
    """
    if isinstance(row, tuple):
        mother, father = row
        return AncestryRecord(
            id=str(animal_id),
            sire_id=_as_id(father),
            dam_id=_as_id(mother),
            display_name=str(animal_id),
        )

    name = _first(row, NAME_COLUMNS)
    coi = _first(row, COI_COLUMNS)
    return AncestryRecord(
        id=str(animal_id),
        sire_id=_as_id(_first(row, SIRE_COLUMNS)),
        dam_id=_as_id(_first(row, DAM_COLUMNS)),
        display_name=str(name) if name is not None else str(animal_id),
        known_coefficient=float(coi) if coi is not None else None,
    )


def _as_id(value: Any) -> str | None:
    value = _clean(value)
    if value is None:
        return None
    # числовой столбец с пропусками pandas хранит как float64: 3.0 → "3"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class DictRepository:
    """Родословная в виде ``{id: row}``."""

    def __init__(self, rows: Mapping[str, Any]):
        self._rows = {str(k): v for k, v in rows.items()}

    def get(self, animal_id: str) -> AncestryRecord | None:
        row = self._rows.get(str(animal_id))
        if row is None:
            return None
        return record_from_row(animal_id, row)

    def ids(self) -> list[str]:
        return list(self._rows)


class DataFrameRepository:
    """
    Родословная поверх ``pd.DataFrame``.

    Обязателен столбец ``id``; родители – ``sire_id``/``dam_id`` или
    ``father_id``/``mother_id``. Необязательные ``name`` и ``inbreeding``.
    """

    def __init__(self, pedigree: pd.DataFrame):
        if "id" not in pedigree.columns:
            raise ValueError("pedigree must contain an 'id' column")
        if not any(c in pedigree.columns for c in SIRE_COLUMNS + DAM_COLUMNS):
            raise ValueError(
                f"pedigree must contain parent columns, one of {SIRE_COLUMNS + DAM_COLUMNS}"
            )
        df = pedigree.copy()
        df["id"] = df["id"].map(_as_id)
        df = df.drop_duplicates(subset="id", keep="first").set_index("id", drop=False)
        if "inbreeding" not in df.columns:
            df["inbreeding"] = float("nan")
        self._df = df

    @classmethod
    def from_csv(cls, path: str) -> "DataFrameRepository":
        try:
            text_cols = ("id",) + SIRE_COLUMNS + DAM_COLUMNS + NAME_COLUMNS
            pedigree = pd.read_csv(path, dtype={c: str for c in text_cols})
        except OSError as exc:
            raise RepositoryError(f"cannot read pedigree from {path}: {exc}") from exc
        return cls(pedigree)

    @property
    def frame(self) -> pd.DataFrame:
        return self._df

    def get(self, animal_id: str) -> AncestryRecord | None:
        key = str(animal_id)
        if key not in self._df.index:
            return None
        return record_from_row(key, self._df.loc[key].to_dict())

    def ids(self) -> list[str]:
        return self._df["id"].tolist()

    def update_coefficient(self, animal_id: str, value: float) -> None:
        key = str(animal_id)
        if key not in self._df.index:
            raise RepositoryError(f"no record {key!r} to update")
        self._df.loc[key, "inbreeding"] = value

    def missing_coefficients(self) -> int:
        return int(self._df["inbreeding"].isna().sum())


class FallbackRepository:
    """Сначала основной источник, затем запасные (например, публичный)."""

    def __init__(self, primary: AncestryRepository, *fallbacks: AncestryRepository):
        self._chain = (primary, *fallbacks)

    def get(self, animal_id: str) -> AncestryRecord | None:
        for repo in self._chain:
            record = repo.get(animal_id)
            if record is not None:
                return record
        return None


class CachedRepository:
    """
    Мемоизация ``get``. После любой записи в нижележащие данные нужно
    вызвать ``invalidate()``.
    """

    def __init__(self, inner: AncestryRepository):
        self._inner = inner
        self._cache: Dict[str, AncestryRecord | None] = {}

    def get(self, animal_id: str) -> AncestryRecord | None:
        key = str(animal_id)
        if key not in self._cache:
            self._cache[key] = self._inner.get(key)
        return self._cache[key]

    def invalidate(self, animal_id: str | None = None) -> None:
        if animal_id is None:
            self._cache.clear()
        else:
            self._cache.pop(str(animal_id), None)

    def __getattr__(self, name: str):
        # ids / update_coefficient / missing_coefficients – от обёрнутого
        return getattr(self._inner, name)

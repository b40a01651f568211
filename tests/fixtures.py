"""Мини-родословные для юнит-тестов."""
import pandas as pd

from coi.repository import DictRepository

# полные сибсы S и D от P1 × P2, R = S × D
FULL_SIBS = {
    "P1": {"sire_id": None, "dam_id": None},
    "P2": {"sire_id": None, "dam_id": None},
    "S": {"sire_id": "P1", "dam_id": "P2"},
    "D": {"sire_id": "P1", "dam_id": "P2"},
    "R": {"sire_id": "S", "dam_id": "D"},
}

# мать D одновременно мать отца S
PARENT_OFFSPRING = {
    "D": {"sire_id": None, "dam_id": None},
    "G": {"sire_id": None, "dam_id": None},
    "S": {"sire_id": "G", "dam_id": "D"},
    "R": {"sire_id": "S", "dam_id": "D"},
}

HALF_SIBS = {
    "S": {"sire_id": None, "dam_id": None},
    "D1": {"sire_id": None, "dam_id": None},
    "D2": {"sire_id": None, "dam_id": None},
    "A": {"sire_id": "S", "dam_id": "D1"},
    "B": {"sire_id": "S", "dam_id": "D2"},
    "X": {"sire_id": "A", "dam_id": "B"},
}

FIRST_COUSINS = {
    "GP_S": {"sire_id": None, "dam_id": None},
    "GP_D": {"sire_id": None, "dam_id": None},
    "Uncle": {"sire_id": "GP_S", "dam_id": "GP_D"},
    "Aunt": {"sire_id": "GP_S", "dam_id": "GP_D"},
    "U1": {"sire_id": None, "dam_id": None},
    "U2": {"sire_id": None, "dam_id": None},
    "C1": {"sire_id": "Uncle", "dam_id": "U1"},
    "C2": {"sire_id": "Aunt", "dam_id": "U2"},
    "X": {"sire_id": "C1", "dam_id": "C2"},
}

# A – потомок полных сибсов (COI 25), X = A × (дочь A)
BACKCROSS = {
    "P1": {"sire_id": None, "dam_id": None},
    "P2": {"sire_id": None, "dam_id": None},
    "U": {"sire_id": None, "dam_id": None},
    "S": {"sire_id": "P1", "dam_id": "P2"},
    "D": {"sire_id": "P1", "dam_id": "P2"},
    "A": {"sire_id": "S", "dam_id": "D"},
    "C": {"sire_id": "A", "dam_id": "U"},
    "X": {"sire_id": "A", "dam_id": "C"},
}


def repo(rows):
    return DictRepository(rows)


def swapped(rows, animal_id):
    """Та же родословная, но у ``animal_id`` отец и мать поменяны местами."""
    out = dict(rows)
    row = out[animal_id]
    out[animal_id] = {"sire_id": row["dam_id"], "dam_id": row["sire_id"]}
    return out


def pedigree_frame(rows) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {"id": k, "father_id": v["sire_id"], "mother_id": v["dam_id"], "name": f"Animal {k}"}
            for k, v in rows.items()
        ]
    )

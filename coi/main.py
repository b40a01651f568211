#!/usr/bin/env python3
"""
CLI-обёртка: пересчитать COI по pedigree.csv или разобрать пару.

Примеры:
    python -m coi.main --data_dir data --generations 8 --out coi.csv
    python -m coi.main --data_dir data --ids CTC953 CTC311 --dry_run
    python -m coi.main --data_dir data --pairing CTC953 CTC276
"""
from __future__ import annotations
import argparse
import logging
import sys

from .batch import recalculate
from .kinship import DEFAULT_GENERATIONS, explain_pairing
from .repository import DataFrameRepository, RepositoryError

LOGGER = logging.getLogger(__name__)


def _parse(argv=None):
    p = argparse.ArgumentParser("pedigree coi")
    p.add_argument("--data_dir", default="data",
                   help="директорий с pedigree.csv")
    p.add_argument("--generations", type=int, default=DEFAULT_GENERATIONS,
                   help="глубина родословной в поколениях")
    p.add_argument("--ids", nargs="+", default=None,
                   help="только эти животные, в указанном порядке")
    p.add_argument("--use_known", action="store_true",
                   help="учитывать сохранённый COI предков (1 + F_A)")
    p.add_argument("--dry_run", action="store_true",
                   help="только показать изменения")
    p.add_argument("--out", default="coi.csv")
    p.add_argument("--log", default=None, help="дублировать лог в файл")
    p.add_argument("--pairing", nargs=2, metavar=("SIRE", "DAM"), default=None,
                   help="разобрать COI гипотетического потомка пары")

    return p.parse_args(argv)


def _run(args) -> int:
    try:
        repo = DataFrameRepository.from_csv(f"{args.data_dir}/pedigree.csv")
    except RepositoryError as exc:
        LOGGER.error("%s", exc)
        return 1

    if args.pairing:
        sire_id, dam_id = args.pairing
        for animal_id in (sire_id, dam_id):
            if repo.get(animal_id) is None:
                LOGGER.error("Animal %s not found", animal_id)
                return 1
        result = explain_pairing(sire_id, dam_id, repo, args.generations,
                                 use_known=args.use_known)
        print(f"COI {sire_id} × {dam_id}: {result.total:.4f}%")
        for item in result.breakdown:
            print(f"  {item.ancestor_id} ({item.ancestor_name}): {item.contribution:.4f}%")
            for pair in item.path_pairs:
                print(f"    {'-'.join(pair.sire_path)} | {'-'.join(pair.dam_path)}"
                      f"  → {pair.contribution:.4f}%")
        return 0

    df = recalculate(
        repo,
        ids=args.ids,
        max_generations=args.generations,
        use_known=args.use_known,
        dry_run=args.dry_run,
    )

    df.to_csv(args.out, index=False)
    print(f"✅  Saved {len(df)} rows → {args.out}")
    return 0


def main(argv=None) -> int:
    args = _parse(argv)
    if not args.log:
        return _run(args)

    handler = logging.FileHandler(args.log, encoding="utf-8")
    handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(logging.INFO)
    try:
        return _run(args)
    finally:
        root.removeHandler(handler)
        handler.close()


if __name__ == "__main__":
    sys.exit(main())

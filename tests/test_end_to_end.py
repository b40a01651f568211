import logging
import pandas as pd
from pathlib import Path

from coi.main import main


PEDIGREE = (
    "id,father_id,mother_id,name\n"
    "P1,,,Founder 1\n"
    "P2,,,Founder 2\n"
    "U,,,Outcross\n"
    "S,P1,P2,Sire\n"
    "D,P1,P2,Dam\n"
    "A,S,D,Inbred\n"
    "C,A,U,Daughter\n"
    "X,A,C,Backcross\n"
)


def test_end_to_end(tmp_path: Path):
    (tmp_path / "pedigree.csv").write_text(PEDIGREE)
    out = tmp_path / "coi.csv"

    assert main(["--data_dir", str(tmp_path), "--out", str(out)]) == 0
    df = pd.read_csv(out, dtype={"id": str})
    assert len(df) == 8
    result = dict(zip(df["id"], df["coi"]))
    assert result["A"] == 25.0
    assert result["X"] == 50.0
    assert result["P1"] == 0.0

    # учитываем COI предков
    assert main(["--data_dir", str(tmp_path), "--out", str(out), "--use_known"]) == 0
    df = pd.read_csv(out, dtype={"id": str})
    assert dict(zip(df["id"], df["coi"]))["X"] == 56.25


def test_fixed_ids_dry_run_with_log(tmp_path: Path):
    (tmp_path / "pedigree.csv").write_text(PEDIGREE)
    out = tmp_path / "coi.csv"
    log = tmp_path / "run.log"

    assert main(["--data_dir", str(tmp_path), "--out", str(out),
                 "--ids", "X", "A", "--dry_run", "--log", str(log)]) == 0
    df = pd.read_csv(out, dtype={"id": str})
    assert df["id"].tolist() == ["X", "A"]
    assert "[DRY] X" in log.read_text(encoding="utf-8")


def test_pairing_explanation(tmp_path: Path, capsys):
    (tmp_path / "pedigree.csv").write_text(PEDIGREE)

    assert main(["--data_dir", str(tmp_path), "--pairing", "S", "D"]) == 0
    printed = capsys.readouterr().out
    assert "COI S × D: 25.0000%" in printed
    assert "P1 (Founder 1): 12.5000%" in printed

    assert main(["--data_dir", str(tmp_path), "--pairing", "S", "NOPE"]) == 1


def test_log_handler_is_released_between_runs(tmp_path: Path):
    (tmp_path / "pedigree.csv").write_text(PEDIGREE)
    out = tmp_path / "coi.csv"
    first = tmp_path / "first.log"
    second = tmp_path / "second.log"
    handlers = list(logging.getLogger().handlers)

    assert main(["--data_dir", str(tmp_path), "--out", str(out),
                 "--ids", "A", "--dry_run", "--log", str(first)]) == 0
    assert main(["--data_dir", str(tmp_path), "--out", str(out),
                 "--ids", "X", "--dry_run", "--log", str(second)]) == 0

    assert logging.getLogger().handlers == handlers
    assert "[DRY] A" in first.read_text(encoding="utf-8")
    assert "[DRY] X" not in first.read_text(encoding="utf-8")
    assert "[DRY] X" in second.read_text(encoding="utf-8")


def test_missing_pedigree_file(tmp_path: Path):
    assert main(["--data_dir", str(tmp_path / "nowhere"), "--out", str(tmp_path / "o.csv")]) == 1
    assert main(["--data_dir", str(tmp_path / "nowhere"), "--pairing", "S", "D"]) == 1

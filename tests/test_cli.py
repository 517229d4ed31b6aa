import json
import shutil
from pathlib import Path

from podstyles.cli import DEFAULT_OUT_DIR, main

GOLDEN = Path(__file__).parent / "fixtures" / "golden"


def _project(tmp_path: Path) -> Path:
    root = tmp_path / "proj"
    shutil.copytree(GOLDEN / "project", root)
    return root


def test_build_writes_outputs_to_default_out_dir(tmp_path, capsys):
    root = _project(tmp_path)
    rc = main(["--root", str(root), "--config", str(root / "podstyles.yaml")])
    assert rc == 0

    out = root / DEFAULT_OUT_DIR
    expected = GOLDEN / "expected"
    assert (out / "pod-styles.scss").read_text(encoding="utf-8") == (expected / "pod-styles.scss").read_text(encoding="utf-8")
    # sources are left alone
    assert "{{import" in (root / "app/components/card/template.hbs").read_text(encoding="utf-8")
    assert "failures=0" in capsys.readouterr().out


def test_second_run_does_not_read_its_own_outputs(tmp_path):
    root = _project(tmp_path)
    args = ["--root", str(root), "--config", str(root / "podstyles.yaml")]
    assert main(args) == 0
    first = (root / DEFAULT_OUT_DIR / "pod-styles.scss").read_text(encoding="utf-8")
    assert main(args) == 0
    assert (root / DEFAULT_OUT_DIR / "pod-styles.scss").read_text(encoding="utf-8") == first


def test_json_report(tmp_path, capsys):
    root = _project(tmp_path)
    rc = main(["--root", str(root), "--config", str(root / "podstyles.yaml"), "--out", str(tmp_path / "o"), "--json"])
    assert rc == 0
    report = json.loads(capsys.readouterr().out)
    assert report["ok"] is True
    assert report["namespace"] == "my-app"
    assert report["counters"]["files_rewritten_style"] == 1


def test_strict_fails_on_diagnostics(tmp_path):
    root = _project(tmp_path)
    (root / "app/components/card/extra.scoped.scss").write_text(".unused { }\n", encoding="utf-8")
    base = ["--root", str(root), "--config", str(root / "podstyles.yaml"), "--out", str(tmp_path / "o")]
    assert main(base) == 0
    assert main(base + ["--strict"]) == 1


def test_file_failure_exits_1(tmp_path, capsys):
    root = _project(tmp_path)
    (root / "app/components/card/broken.scoped.scss").write_text(".x {\n", encoding="utf-8")
    rc = main(["--root", str(root), "--config", str(root / "podstyles.yaml"), "--out", str(tmp_path / "o")])
    assert rc == 1
    assert "FAIL style app/components/card/broken.scoped.scss" in capsys.readouterr().out


def test_bad_config_exits_2(tmp_path):
    rc = main(["--root", str(tmp_path), "--scheme", "flat", "--config", str(tmp_path / "missing.yaml")])
    assert rc == 2


def test_flags_override_config(tmp_path, capsys):
    root = _project(tmp_path)
    out = tmp_path / "o"
    rc = main(
        ["--root", str(root), "--config", str(root / "podstyles.yaml"), "--out", str(out), "--scheme", "flat", "--text-mode"]
    )
    assert rc == 0
    assert (out / "pod-styles.scss").read_text(encoding="utf-8").startswith(".card-title_3985f")

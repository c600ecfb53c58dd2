import json

from Ingress.build_network import main


def test_builds_one_project(tmp_path, examples_dir, capsys):
    output = tmp_path / "out"
    code = main(["--input", str(examples_dir / "k8s-modular"), "--output", str(output)])

    assert code == 0
    assert json.loads((output / "network.json").read_text(encoding="utf-8"))["id"] == "k8s-modular"
    assert "NETWORK BUILD COMPLETE" in capsys.readouterr().out


def test_builds_every_example(tmp_path, monkeypatch, examples_dir):
    monkeypatch.setattr("Ingress.build_network.EXAMPLES_DIR", examples_dir)
    output = tmp_path / "out"

    assert main(["--output", str(output)]) == 0
    assert (output / "k8s-modular" / "graph.json").exists()
    assert (output / "k8s-topology" / "network.json").exists()


def test_reports_dropped_records(tmp_path, capsys):
    source = tmp_path / "project"
    source.mkdir()
    (source / "orphan.bkn").write_text("---\ntype: action\nid: orphan\n---\n", encoding="utf-8")

    assert main(["--input", str(source), "--output", str(tmp_path / "out")]) == 0
    assert "Dropped action 'orphan'" in capsys.readouterr().out


def test_missing_input(tmp_path, capsys):
    assert main(["--input", str(tmp_path / "absent")]) == 1
    assert "✗ Error" in capsys.readouterr().out

import json

import yaml

import generate_weekly_report


def _write(tmp_path, sample_report, meta=None):
    data = dict(sample_report)
    if meta:
        data["meta"] = meta
    path = tmp_path / "report.yaml"
    path.write_text(yaml.safe_dump(data, allow_unicode=True), encoding="utf-8")
    return path


def test_renders_pdf(tmp_path, sample_report):
    src = _write(tmp_path, sample_report)
    out = tmp_path / "out.pdf"
    rc = generate_weekly_report.main(["--input", str(src), "--output", str(out), "--name", "李四"])
    assert rc == 0
    assert out.read_bytes().startswith(b"%PDF")


def test_renders_docx_from_json_with_custom_color(tmp_path, sample_report):
    src = tmp_path / "report.json"
    src.write_text(json.dumps(sample_report, ensure_ascii=False), encoding="utf-8")
    out = tmp_path / "out.docx"
    rc = generate_weekly_report.main(
        ["--input", str(src), "--output", str(out), "--primary", "#f97316"]
    )
    assert rc == 0
    assert out.read_bytes()[:2] == b"PK"


def test_meta_precedence(tmp_path, sample_report, monkeypatch):
    src = _write(tmp_path, sample_report, meta={"name": "文件里的名字", "role": "测试"})
    captured = {}

    def fake_export(rows, report, meta, theme, dest):
        captured.update(meta)
        return dest

    monkeypatch.setitem(generate_weekly_report.EXPORTERS, ".pdf", fake_export)
    generate_weekly_report.main(
        ["--input", str(src), "--output", str(tmp_path / "x.pdf"), "--name", "命令行名字"]
    )
    assert captured["name"] == "命令行名字"
    assert captured["role"] == "测试"


def test_rejects_unknown_suffix(tmp_path, sample_report):
    src = _write(tmp_path, sample_report)
    assert generate_weekly_report.main(["--input", str(src), "--output", str(tmp_path / "x.txt")]) == 1


def test_rejects_unknown_theme(tmp_path, sample_report, capsys):
    src = _write(tmp_path, sample_report)
    rc = generate_weekly_report.main(
        ["--input", str(src), "--output", str(tmp_path / "x.pdf"), "--theme", "紫色"]
    )
    assert rc == 1
    assert "Unknown theme" in capsys.readouterr().out

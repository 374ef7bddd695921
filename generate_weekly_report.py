import argparse
import logging
import sys
from pathlib import Path

import yaml

import settings
from report_data import default_meta
from report_export import ExportError, export_docx, export_pdf
from report_layout import build_report_table
from report_themes import THEMES, theme_from_options

EXPORTERS = {".pdf": export_pdf, ".docx": export_docx}


def load_report(path: Path) -> dict:
    """Read a structured report from YAML or JSON (JSON parses as YAML)."""
    data = yaml.safe_load(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"{path} does not contain a report object")
    return data


def main(argv=None):
    ap = argparse.ArgumentParser(
        description="Render a structured weekly report (YAML/JSON) to a themed PDF or Word table."
    )
    ap.add_argument("--input", required=True, help="Path to YAML/JSON report file.")
    ap.add_argument("--output", required=True, help="Path to output .pdf or .docx.")
    ap.add_argument(
        "--theme",
        default=None,
        help="Preset theme name: " + ", ".join(t.name for t in THEMES),
    )
    ap.add_argument("--primary", default=None, help="Custom primary color, e.g. #3b82f6.")
    ap.add_argument("--name", default=None, help="Name shown in the header.")
    ap.add_argument("--role", default=None, help="Role shown in the header.")
    ap.add_argument("--week", default=None, help="Date range shown in the header.")
    args = ap.parse_args(argv)

    logging.basicConfig(level=settings.log_level(), format="%(levelname)s %(name)s: %(message)s")

    output = Path(args.output)
    exporter = EXPORTERS.get(output.suffix.lower())
    if exporter is None:
        print(f"❌ Error: output must end with .pdf or .docx: {output}")
        return 1

    try:
        report = load_report(Path(args.input))
        theme = theme_from_options(args.theme, args.primary)
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"❌ Error: {e}")
        return 1

    meta = default_meta()
    file_meta = report.pop("meta", None) or {}
    if isinstance(file_meta, dict):
        meta.update({k: str(v) for k, v in file_meta.items() if k in meta})
    if args.name:
        meta["name"] = args.name
    if args.role:
        meta["role"] = args.role
    if args.week:
        meta["dateRange"] = args.week

    rows = build_report_table(report, meta)
    try:
        exporter(rows, report, meta, theme, output)
    except ExportError as e:
        print(f"❌ {e}")
        return 1

    print(f"✓ Generated report: {output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

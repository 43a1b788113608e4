#!/usr/bin/env python3
"""
Export forms to JSON files and import JSON files as new forms.

Usage:
    python scripts/form_json.py check path/to/my-form.json
    python scripts/form_json.py import path/to/my-form.json
    python scripts/form_json.py import path/to/my-form.json --keep-ids --drop-theme
    python scripts/form_json.py export <form-id> --out-dir exports/
"""

import argparse
import sys
import uuid
from pathlib import Path

from dotenv import load_dotenv
from sqlalchemy.orm import Session

# Load environment variables
load_dotenv()

from formbuilder.api.forms import create_form_from_layout, layout_of
from formbuilder.core.audit import log_event
from formbuilder.core.layout_engine import FormLayout
from formbuilder.core.serialization import (
    FormPipelineError,
    deserialize_form,
    read_json_file,
    validate_form_compatibility,
    write_form_json,
)
from formbuilder.db.session import SessionLocal
from formbuilder.models.form import Form


def check_file(path: Path) -> bool:
    data = read_json_file(path)
    report = validate_form_compatibility(data)
    print(f"Version:    {report.version}")
    print(f"Valid:      {report.is_valid}")
    print(f"Can import: {report.can_import}")
    for issue in report.issues:
        print(f"  - {issue}")
    return report.can_import


def import_file(db: Session, path: Path, *, replace_ids: bool, preserve_theme: bool) -> Form:
    data = read_json_file(path)
    report = validate_form_compatibility(data)
    if not report.can_import:
        raise FormPipelineError("File cannot be imported", report.issues)

    imported = deserialize_form(data, replace_ids=replace_ids, preserve_theme=preserve_theme)
    layout = FormLayout(imported.fields, imported.rows)
    layout.normalize()

    form = create_form_from_layout(
        db,
        title=imported.title,
        description=imported.description,
        layout=layout,
        theme_color=imported.theme_color,
    )
    log_event(
        db=db,
        action="FORM_IMPORTED",
        entity_type="form",
        entity_id=form.id,
        metadata={"source": path.name, "replace_ids": replace_ids},
    )
    db.commit()
    db.refresh(form)
    return form


def export_form(db: Session, form_id: str, out_dir: Path) -> Path:
    form = db.get(Form, uuid.UUID(form_id))
    if not form:
        raise FormPipelineError(f"Form not found: {form_id}")
    layout = layout_of(form)
    out_dir.mkdir(parents=True, exist_ok=True)
    return write_form_json(out_dir, form.title, form.description, layout.fields, layout.rows, form.theme_color)


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(description="Import/export forms as JSON")
    sub = parser.add_subparsers(dest="command", required=True)

    p_check = sub.add_parser("check", help="Dry-run compatibility check of a JSON file")
    p_check.add_argument("path", type=Path)

    p_import = sub.add_parser("import", help="Create a new form from a JSON file")
    p_import.add_argument("path", type=Path)
    p_import.add_argument("--keep-ids", action="store_true", help="Keep row/field ids from the file")
    p_import.add_argument("--drop-theme", action="store_true", help="Use the default theme color")

    p_export = sub.add_parser("export", help="Write a stored form to <title>-form.json")
    p_export.add_argument("form_id")
    p_export.add_argument("--out-dir", type=Path, default=Path("."))

    args = parser.parse_args()

    if args.command == "check":
        try:
            ok = check_file(args.path)
        except FormPipelineError as e:
            print(f"Error: {e.message}")
            sys.exit(1)
        sys.exit(0 if ok else 1)

    db = SessionLocal()
    try:
        if args.command == "import":
            form = import_file(db, args.path, replace_ids=not args.keep_ids, preserve_theme=not args.drop_theme)
            print(f"Imported '{form.title}' as {form.id} ({len(form.fields)} fields, {len(form.rows)} rows)")
        else:
            path = export_form(db, args.form_id, args.out_dir)
            print(f"Exported to {path}")
    except FormPipelineError as e:
        print(f"Error: {e.message}")
        for issue in e.issues:
            print(f"  - {issue}")
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    main()

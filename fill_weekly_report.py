#!/usr/bin/env python3
"""
Interactive form to log this week's tasks and generate the weekly report.
This script walks through Monday to Friday, saves the task board as the
local draft, then optionally asks the model for the structured report and
exports it as a PDF.
"""

import logging
import sys
from pathlib import Path

import settings
from drafts import DraftError, DraftStore
from report_ai import ReportGenerationError, generate_report, openai_client
from report_data import ReportDataStore, ReportParseError, default_meta
from report_export import PDF_FILENAME, ExportError, export_pdf
from report_layout import build_report_table
from report_themes import DEFAULT_THEME
from weekly_tasks import (
    DAYS_OF_WEEK,
    TASK_STATUSES,
    add_task,
    empty_week,
    get_week_range,
    has_content,
    update_task,
)


def prompt(question, default=None, required=True):
    """Prompt user for input with optional default value"""
    if default:
        response = input(f"{question} [{default}]: ").strip()
        return response if response else default
    else:
        while True:
            response = input(f"{question}: ").strip()
            if response or not required:
                return response
            print("This field is required. Please enter a value.")


def prompt_list(question, item_label="Task"):
    """Prompt for a list of items"""
    items = []
    print(f"\n{question}")
    print("(Press Enter on an empty line to finish)")
    i = 1
    while True:
        item = input(f"{item_label} {i} (or press Enter to finish): ").strip()
        if not item:
            break
        items.append(item)
        i += 1
    return items


def prompt_status(content):
    """Ask for a task status; Enter keeps 'completed'."""
    choices = "/".join(TASK_STATUSES)
    while True:
        status = input(f"  Status for '{content}' ({choices}) [completed]: ").strip()
        if not status:
            return "completed"
        if status in TASK_STATUSES:
            return status
        print(f"  Please enter one of: {choices}")


def prompt_week(board):
    """Append tasks for each weekday to ``board``; returns the new board."""
    for day in DAYS_OF_WEEK:
        print("\n" + "-" * 60)
        print(day.upper())
        print("-" * 60)
        for content in prompt_list(f"What did you work on {day}?"):
            status = prompt_status(content)
            board, task = add_task(board, day)
            board = update_task(board, day, task.id, content=content, status=status)
    return board


def main():
    logging.basicConfig(level=settings.log_level(), format="%(levelname)s %(name)s: %(message)s")

    print("=" * 60)
    print("WEEKLY TASK LOG")
    print("=" * 60)
    print("\nLog your tasks for each day. Press Enter to use default values where shown.\n")

    drafts = DraftStore(settings.draft_dir())
    board = empty_week()
    if drafts.exists():
        use_draft = input("Load the saved draft first? (y/n): ").strip().lower()
        if use_draft == "y":
            try:
                board = drafts.load()
            except DraftError as e:
                print(f"❌ {e} Starting from an empty week.")

    board = prompt_week(board)

    try:
        drafts.save(board)
        print(f"\n✓ Saved draft to: {drafts.path}")
    except DraftError as e:
        print(f"❌ {e}")

    if not has_content(board):
        print("No tasks logged; nothing to generate.")
        return

    generate = input("\nGenerate the weekly report with AI now? (y/n): ").strip().lower()
    if generate != "y":
        return

    client, err = openai_client()
    if err:
        print(f"❌ {err}")
        sys.exit(1)

    print("\nGenerating weekly report...")
    store = ReportDataStore(meta=default_meta())
    try:
        store.load_text(generate_report(board, client))
    except (ReportGenerationError, ReportParseError) as e:
        print(f"❌ Error generating report: {e}")
        sys.exit(1)

    store.update_meta("name", prompt("Name", store.meta["name"]))
    store.update_meta("role", prompt("Role", store.meta["role"]))
    store.update_meta("dateRange", prompt("Week", get_week_range()))

    output_file = Path(prompt("Output file", PDF_FILENAME))
    rows = build_report_table(store.report, store.meta)
    try:
        export_pdf(rows, store.report, store.meta, DEFAULT_THEME, output_file)
    except ExportError as e:
        print(f"❌ {e}")
        sys.exit(1)

    print(f"✓ Generated PDF: {output_file}")
    print("\n" + "=" * 60)
    print("SUCCESS! Your weekly report is ready.")
    print("=" * 60)


if __name__ == "__main__":
    main()

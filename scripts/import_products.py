import argparse
import sys
from pathlib import Path

from prostore.db import SessionLocal
from prostore.errors import ValidationError
from prostore.services.spreadsheets import import_products


def main() -> None:
    parser = argparse.ArgumentParser(description="Importa produtos de uma planilha .xlsx.")
    parser.add_argument("xlsx_path", help="Caminho da planilha")
    args = parser.parse_args()

    path = Path(args.xlsx_path)
    if path.suffix.lower() != ".xlsx":
        print("Only .xlsx files are supported", file=sys.stderr)
        sys.exit(2)

    session = SessionLocal()
    try:
        report = import_products(session, path.read_bytes())
    except ValidationError as exc:
        print(exc.message, file=sys.stderr)
        sys.exit(1)
    finally:
        session.close()

    print(report.message)
    if report.skipped_rows:
        print(f"Skipped rows (missing fields): {report.skipped_rows}")
    for error in report.errors:
        print(f"Row {error['row']}: {error['message']}")


if __name__ == "__main__":
    main()

"""Run the spreadsheet sync loop until SIGINT/SIGTERM."""

from __future__ import annotations

from sheetsync.service import main


if __name__ == "__main__":
    raise SystemExit(main())

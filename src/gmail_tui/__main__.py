"""Allow ``python -m gmail_tui``."""

from gmail_tui.cli import main

if __name__ == "__main__":
    main()

"""Entry point for python -m hpanel."""

from .cli import main

if __name__ == "__main__":
    main()

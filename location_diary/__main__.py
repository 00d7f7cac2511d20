"""Allow ``python -m location_diary``."""

from .cli import main

if __name__ == "__main__":
    main()

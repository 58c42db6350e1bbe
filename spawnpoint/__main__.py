"""Allow ``python -m spawnpoint``."""

from .cli import main

if __name__ == "__main__":
    main()

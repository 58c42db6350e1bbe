"""Command-line entry point for --TEMPLATE_PROJECT_NAME--."""

import argparse
import os

DEFAULT_GREETING = os.environ.get("--SHOUTY_PROJECT_NAME--_GREETING", "Hello")


class --PascalProjectName--:
    def greet(self, name: str) -> str:
        return f"{DEFAULT_GREETING}, {name}!"


def main() -> None:
    parser = argparse.ArgumentParser(prog="--kebab-project-name--")
    parser.add_argument("name", nargs="?", default="world")
    args = parser.parse_args()
    print(--PascalProjectName--().greet(args.name))


if __name__ == "__main__":
    main()

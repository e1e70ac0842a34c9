"""Command that checks a plugin configuration file."""

from __future__ import annotations

import argparse
import sys
from typing import Optional, Sequence

from richat_geyser.config import Config, ConfigError


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="config-check",
        description="Richat Agave Geyser Plugin Config Check Cli Tool",
    )
    parser.add_argument(
        "-c", "--config", default="config.json", help="Path to config"
    )
    args = parser.parse_args(argv)
    try:
        Config.load_from_file(args.config)
    except ConfigError as error:
        print(f"Error: {error}", file=sys.stderr)
        return 1
    print("Config is OK!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
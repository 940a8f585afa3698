"""Script to apply or roll back the scheduling schema migrations."""

import sys

from alembic import command
from alembic.config import Config

ALEMBIC_INI = "alembic.ini"


def run_migrations(revision: str = "head") -> None:
    """Upgrade the schema to ``revision``."""
    alembic_cfg = Config(ALEMBIC_INI)

    try:
        print(f"Upgrading schema to {revision}...")
        command.upgrade(alembic_cfg, revision)
        print("✓ Migrations completed successfully!")
    except Exception as e:
        print(f"✗ Migration failed: {e}", file=sys.stderr)
        sys.exit(1)


def rollback(revision: str = "-1") -> None:
    """Downgrade the schema to ``revision``."""
    alembic_cfg = Config(ALEMBIC_INI)

    try:
        print(f"Downgrading schema to {revision}...")
        command.downgrade(alembic_cfg, revision)
        print("✓ Rollback completed successfully!")
    except Exception as e:
        print(f"✗ Rollback failed: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    args = sys.argv[1:]
    if not args:
        run_migrations()
    elif args[0] == "upgrade":
        run_migrations(args[1] if len(args) > 1 else "head")
    elif args[0] == "downgrade":
        rollback(args[1] if len(args) > 1 else "-1")
    else:
        print("Usage: python scripts/migrate.py [upgrade [revision] | downgrade [revision]]")
        sys.exit(2)

#!/usr/bin/env python
"""
Content Vault schema migrations

    python migrate_db.py                 upgrade to head
    python migrate_db.py downgrade [rev] step back one revision, or to rev
    python migrate_db.py status          show applied and pending revisions
    python migrate_db.py check           exit 1 unless the database is at head
"""
import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).parent
sys.path.insert(0, str(ROOT / "src"))

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy.engine import Engine

from content_vault.config import config
from content_vault.db import engine as default_engine


def alembic_config(database_url: str) -> Config:
    """alembic.ini next to this script, pointed at database_url"""
    cfg = Config(str(ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(ROOT / "alembic"))
    cfg.set_main_option("sqlalchemy.url", database_url.replace("%", "%%"))
    return cfg


def pending_revisions(cfg: Config, engine: Engine):
    """(current revision, revisions not yet applied, oldest first)"""
    script = ScriptDirectory.from_config(cfg)
    with engine.connect() as connection:
        current = MigrationContext.configure(connection).get_current_revision()
    pending = [rev.revision for rev in script.iterate_revisions("head", current or "base")]
    return current, list(reversed(pending))


def upgrade(cfg: Config, engine: Engine):
    current, pending = pending_revisions(cfg, engine)
    if not pending:
        print(f"Database already at head ({current})")
        return
    print(f"Applying {len(pending)} migration(s): {', '.join(pending)}")
    command.upgrade(cfg, "head")
    print("✓ Content Vault schema is up to date")


def downgrade(cfg: Config, revision: str):
    if config.is_prod:
        print("❌ Refusing to downgrade a production database")
        sys.exit(1)
    print(f"Downgrading database to revision: {revision}")
    command.downgrade(cfg, revision)
    print("✓ Database downgrade completed")


def status(cfg: Config, engine: Engine):
    current, pending = pending_revisions(cfg, engine)
    print(f"Environment: {config.ENV}")
    print(f"Current revision: {current or 'none (database not initialized)'}")
    print(f"Pending: {', '.join(pending) if pending else 'none'}")


def check(cfg: Config, engine: Engine):
    _, pending = pending_revisions(cfg, engine)
    if pending:
        print(f"Database is {len(pending)} migration(s) behind head")
        sys.exit(1)
    print("Database is at head")


def main(argv=None):
    parser = argparse.ArgumentParser(description="Content Vault schema migrations")
    parser.add_argument("action", nargs="?", default="upgrade", choices=["upgrade", "downgrade", "status", "check"])
    parser.add_argument("revision", nargs="?", default="-1", help="target revision for downgrade")
    args = parser.parse_args(argv)

    cfg = alembic_config(default_engine.url.render_as_string(hide_password=False))
    if args.action == "upgrade":
        upgrade(cfg, default_engine)
    elif args.action == "downgrade":
        downgrade(cfg, args.revision)
    elif args.action == "status":
        status(cfg, default_engine)
    else:
        check(cfg, default_engine)


if __name__ == "__main__":
    main()

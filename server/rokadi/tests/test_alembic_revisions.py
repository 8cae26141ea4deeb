import re
from pathlib import Path

from rokadi import models  # noqa: F401
from rokadi.db import Base

VERSIONS_DIR = Path(__file__).resolve().parents[2] / "alembic" / "versions"
CREATE_TABLE = re.compile(r'create_table\(\s*"(\w+)"')


def _migration_sources() -> dict[str, str]:
    return {path.name: path.read_text(encoding="utf-8") for path in sorted(VERSIONS_DIR.glob("*.py"))}


def _assigned(text: str, name: str):
    match = re.search(rf"^{name} = (None|\"([^\"]+)\")", text, re.MULTILINE)
    if not match or match.group(1) == "None":
        return None
    return match.group(2)


def test_alembic_revision_ids_fit_version_table_limit():
    """Postgres alembic_version.version_num is varchar(32) in this project."""
    too_long = [
        (name, _assigned(text, "revision"), len(_assigned(text, "revision")))
        for name, text in _migration_sources().items()
        if len(_assigned(text, "revision") or "") > 32
    ]

    assert not too_long, (
        "Alembic revision IDs must be <= 32 chars to fit alembic_version.version_num. "
        f"Found: {too_long}"
    )


def test_revisions_form_a_single_chain():
    revisions = {}
    for name, text in _migration_sources().items():
        revisions[_assigned(text, "revision")] = _assigned(text, "down_revision")

    heads = set(revisions) - set(revisions.values())
    roots = [revision for revision, down in revisions.items() if down is None]

    assert len(heads) == 1
    assert roots == ["0001_initial"]
    assert all(down is None or down in revisions for down in revisions.values())


def test_migrations_create_every_model_table():
    created = set()
    for text in _migration_sources().values():
        created.update(CREATE_TABLE.findall(text))

    assert set(Base.metadata.tables) - created == set()

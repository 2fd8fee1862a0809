import pytest

from bluebox_catalog import db
from bluebox_catalog.config import Config


def test_conninfo_sets_search_path():
    conninfo = db.conninfo_for(Config(db_name="dvdrental", db_port=6543, db_schema="catalog"))
    assert "dbname=dvdrental" in conninfo
    assert "port=6543" in conninfo
    assert conninfo.endswith("options=-csearch_path=catalog,public")


def test_get_pool_requires_init():
    with pytest.raises(RuntimeError, match="not initialized"):
        db.get_pool()

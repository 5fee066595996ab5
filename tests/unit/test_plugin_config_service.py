import pytest

from chatbridge.errors import PersistenceError
from chatbridge.services.plugin_config_service import PluginConfigService, decode_config


def _create(db, **overrides):
    fields = {
        "plugin_id": "telegram",
        "user_id": "u1",
        "agent_id": 1,
        "platform": "telegram",
        "config": {"botToken": "1:abc"},
    }
    fields.update(overrides)
    return PluginConfigService.create_plugin_config(db, **fields)


def test_create_defaults_to_disabled(db_session):
    row = _create(db_session)
    assert row.enabled is False
    assert decode_config(row) == {"botToken": "1:abc"}


def test_same_owner_key_twice_conflicts(db_session):
    _create(db_session)
    with pytest.raises(PersistenceError):
        _create(db_session)


def test_lookup_by_owner_key(db_session):
    row = _create(db_session, agent_id=2)
    assert PluginConfigService.get_plugin_config_by_plugin_id(db_session, "telegram", "u1", 2).id == row.id
    assert PluginConfigService.get_plugin_config_by_plugin_id(db_session, "telegram", "u2", 2) is None


def test_configs_filtered_by_user_and_agent(db_session):
    _create(db_session, agent_id=1)
    _create(db_session, agent_id=2)
    _create(db_session, user_id="u2")
    assert len(PluginConfigService.get_plugin_configs(db_session, "u1")) == 2
    assert len(PluginConfigService.get_plugin_configs(db_session, "u1", agent_id=2)) == 1
    assert len(PluginConfigService.get_plugin_configs_for_agent(db_session, 1)) == 2


def test_update_stamps_updated_at(db_session):
    row = _create(db_session)
    before = row.updated_at
    updated = PluginConfigService.update_plugin_config(db_session, row, config={"botToken": "2:def"}, enabled=True)
    assert updated.enabled is True
    assert decode_config(updated) == {"botToken": "2:def"}
    assert updated.updated_at >= before


def test_enabled_configs_only(db_session):
    _create(db_session, config={"verifyToken": "a"}, enabled=True)
    _create(db_session, user_id="u2", config={"verifyToken": "b"})
    assert PluginConfigService.get_enabled_configs_for_plugin(db_session, "telegram") == [{"verifyToken": "a"}]


def test_corrupt_config_raises(db_session):
    row = _create(db_session)
    row.config = "{not json"
    db_session.commit()
    with pytest.raises(PersistenceError, match="corrupt"):
        decode_config(row)

    row.config = "[1, 2]"
    db_session.commit()
    with pytest.raises(PersistenceError, match="not an object"):
        decode_config(row)


def test_delete(db_session):
    row = _create(db_session)
    PluginConfigService.delete_plugin_config(db_session, row)
    assert PluginConfigService.get_plugin_configs(db_session, "u1") == []

from entitylab.registry import seed_people
from entitylab.services import LifecycleManager
from examples.people_app import bootstrap_session, persist_registry, run_demo


def test_people_example_bootstrap_and_persist(tmp_path):
    db_path = tmp_path / "people_example.db"
    session = bootstrap_session(dsn=f"sqlite:///{db_path}")
    try:
        registry = seed_people()
        ids = persist_registry(LifecycleManager(session), registry)
        assert ids == list(range(1, 11))
        assert all(person.version == 0 for person in registry)
        assert persist_registry(LifecycleManager(session), registry) == []
    finally:
        session.close()


def test_run_demo_shows_divergence_and_reconciliation():
    summary = run_demo()
    assert summary["persisted"] == list(range(1, 11))
    assert summary["store_john"]["email"] == "john.smith@gmail.com"
    assert summary["registry_john"]["email"] == "john@gmail.com"
    assert summary["merged"] == {"id": 3, "name": "Mary Williams", "email": "mary@outlook.com", "version": 1}
    assert summary["name_matches"] == ["John Smith", "James Johnson", "Robert Jones"]

import pytest
from fastapi.testclient import TestClient

from ataeru.config import Config, ensure_storage_layout
from ataeru.main import create_app

TEST_KEYS = "other-key\nsecret123\n"


@pytest.fixture
def storage_dir(tmp_path):
    return tmp_path / "store"


@pytest.fixture
def make_client(storage_dir):
    """Factory for started TestClients over an isolated storage root."""
    clients = []

    def _make(**overrides):
        values = dict(
            port=5605,
            storage_dir=storage_dir,
            max_file_size=2,
            public_upload=True,
        )
        values.update(overrides)
        config = Config(**values)
        ensure_storage_layout(config)
        client = TestClient(create_app(config))
        # Run the lifespan so services are attached to app.state
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client):
    return make_client()


@pytest.fixture
def private_client(make_client, storage_dir):
    client = make_client(public_upload=False)
    (storage_dir / "keys").write_text(TEST_KEYS)
    return client

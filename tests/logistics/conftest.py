import pytest
from protean import current_domain
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def logistics_bed():
    from logistics.domain import logistics

    bed = DomainFixture(logistics)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(logistics_bed):
    from logistics.fanout.hub import reset_hub
    from logistics.fanout.transport import reset_transport
    from logistics.tracking import reset_positioning

    reset_hub()
    reset_transport()
    reset_positioning()
    with logistics_bed.domain_context():
        yield
        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()
    reset_hub()
    reset_transport()
    reset_positioning()

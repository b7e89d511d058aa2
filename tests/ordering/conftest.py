import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def ordering_bed():
    from ordering.domain import ordering

    bed = DomainFixture(ordering)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(ordering_bed):
    with ordering_bed.domain_context():
        yield


@pytest.fixture(autouse=True)
def _reset_adapters():
    """Fresh fake gateways, notifier, presence and label provider for every test."""
    from ordering.gateway import reset_gateways
    from ordering.notification import reset_notifier, reset_presence
    from ordering.shipping import reset_label_provider

    reset_gateways()
    reset_notifier()
    reset_presence()
    reset_label_provider()
    yield
    reset_gateways()
    reset_notifier()
    reset_presence()
    reset_label_provider()

import pytest


@pytest.fixture(autouse=True)
def isolated_container():
    """Fresh test doubles (dummy gateway, in-memory bus, no retry sleeps) for every test."""
    from infrastructure.container import container
    from infrastructure.events import reset_event_bus

    reset_event_bus()
    container.configure_for_testing()
    yield container
    container.reset()
    reset_event_bus()

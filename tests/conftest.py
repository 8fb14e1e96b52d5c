import os
from pathlib import Path

import pytest
from faker import Faker


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests.

    Select the configuration environment so every marketplace built during
    the run reads the matching overlay from ``foodsaver.toml``.
    """
    os.environ["FOODSAVER_ENV"] = session.config.option.env


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = Path(item.fspath)

        if "/domain/" in str(test_path):
            item.add_marker(pytest.mark.domain)
        elif "/application/" in str(test_path):
            item.add_marker(pytest.mark.application)
        elif "/integration/" in str(test_path):
            item.add_marker(pytest.mark.integration)
            # Integration tests are often slower
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture()
def config(request, tmp_path):
    """Configuration for one test.

    Without ``DATABASE_URL`` every test gets its own SQLite file, so tests
    never see each other's rows.
    """
    from shared.config import load_config

    overrides = {"log_to_file": False}
    if not os.getenv("DATABASE_URL"):
        overrides["database_uri"] = f"sqlite:///{tmp_path / 'foodsaver.db'}"
    return load_config(env=request.config.option.env, **overrides)


@pytest.fixture()
def marketplace(config):
    from marketplace.bootstrap import build_marketplace

    marketplace = build_marketplace(config)
    marketplace.setup_db()

    yield marketplace

    marketplace.drop_db()
    marketplace.close()


@pytest.fixture()
def fake():
    faker = Faker()
    Faker.seed(4321)
    return faker


@pytest.fixture()
def restaurant_owner_id():
    return 2


@pytest.fixture()
def restaurant_id(marketplace, fake, restaurant_owner_id):
    return marketplace.restaurants.create(
        owner_id=restaurant_owner_id,
        name=fake.company(),
        description=fake.catch_phrase(),
        category="Bakery",
        address=fake.address(),
        phone=fake.phone_number(),
    )


@pytest.fixture()
def food_item_id(marketplace, restaurant_id):
    return marketplace.catalog.create(
        restaurant_id=restaurant_id,
        name="Sourdough Loaf",
        original_price=8.0,
        discounted_price=4.0,
        quantity_available=10,
    )


@pytest.fixture()
def second_food_item_id(marketplace, restaurant_id):
    return marketplace.catalog.create(
        restaurant_id=restaurant_id,
        name="Cinnamon Roll",
        original_price=4.0,
        discounted_price=1.5,
        quantity_available=3,
    )

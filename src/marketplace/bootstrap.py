"""Wire the bounded contexts into one running marketplace.

Every context declares its tables on the shared metadata when its module is
imported, so all of them are imported here before the schema is touched.
"""

from dataclasses import dataclass

import structlog

from catalogue.food_item.food_item import ItemCatalog
from catalogue.restaurant.restaurant import RestaurantDirectory
from coupons.coupon.coupon import CouponLedger
from fulfillment.delivery import order_events as delivery_order_events
from fulfillment.delivery.tracking import DeliveryTracker
from notifications.notification import ordering_events as notification_ordering_events
from notifications.notification.notification import NotificationCenter
from ordering.order import tables as _order_tables  # noqa: F401
from ordering.order.ledger import OrderLedger
from shared.config import Config, load_config
from shared.events.bus import EventBus
from shared.utils.db import Database, drop_db, setup_db
from shared.utils.logging import configure_logging

logger = structlog.get_logger(__name__)


@dataclass
class Marketplace:
    config: Config
    database: Database
    bus: EventBus
    restaurants: RestaurantDirectory
    catalog: ItemCatalog
    coupons: CouponLedger
    tracker: DeliveryTracker
    notifications: NotificationCenter
    ledger: OrderLedger

    def setup_db(self) -> None:
        setup_db(self.database)

    def drop_db(self) -> None:
        drop_db(self.database)

    def close(self) -> None:
        self.database.dispose()


def build_marketplace(config: Config | None = None, configure_logs: bool = True) -> Marketplace:
    config = config or load_config()

    if configure_logs:
        configure_logging(
            env=config.env,
            level=config.log_level,
            log_dir=config.log_dir,
            log_file_prefix=config.log_file_prefix,
            log_to_file=config.log_to_file,
            echo_sql=config.echo_sql,
        )

    # Configured logging carries SQL echo itself; the engine only echoes on
    # its own when nothing else set up handlers.
    database = Database(
        config.database_uri,
        echo=config.echo_sql and not configure_logs,
        sqlite_busy_timeout=config.sqlite_busy_timeout,
    )
    bus = EventBus()

    catalog = ItemCatalog(database)
    coupons = CouponLedger(database)
    tracker = DeliveryTracker(database)
    notifications = NotificationCenter(database)

    delivery_order_events.register(bus, tracker)
    notification_ordering_events.register(bus, notifications)

    marketplace = Marketplace(
        config=config,
        database=database,
        bus=bus,
        restaurants=RestaurantDirectory(database),
        catalog=catalog,
        coupons=coupons,
        tracker=tracker,
        notifications=notifications,
        ledger=OrderLedger(
            database,
            catalog,
            coupons,
            bus,
            strict_status_transitions=config.strict_status_transitions,
        ),
    )

    logger.info(
        "Marketplace initialized",
        env=config.env,
        database=database.engine.url.render_as_string(hide_password=True),
        strict_status_transitions=config.strict_status_transitions,
    )
    return marketplace

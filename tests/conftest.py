"""Shared fixtures: a small hand-written log and a seeded random log factory."""

from __future__ import annotations

import random
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

import pytest
from faker import Faker

from ocelconv.models.ocel import ObjectAttributeEntry, OcelEvent, OcelLog, OcelObject
from ocelconv.models.values import ValueKind, value_of

T0 = datetime(2024, 3, 1, 9, 0, 0, tzinfo=UTC)

ACTIVITIES = ["place order", "pick item", "pack item", "ship package", "pay order", "confirm delivery"]
OBJECT_TYPES = ["order", "item", "package", "customer"]


def make_sample_log() -> OcelLog:
    """Two events, two objects, every value kind, all attributes declared."""
    order = OcelObject(
        id="o1",
        type="order",
        attributes={
            "status": (
                ObjectAttributeEntry(value=value_of("open"), time=T0),
                ObjectAttributeEntry(value=value_of("paid"), time=T0 + timedelta(hours=2)),
            ),
            "total": (ObjectAttributeEntry(value=value_of(99.5), time=None),),
        },
    )
    item = OcelObject(
        id="i1",
        type="item",
        attributes={
            "sku": (ObjectAttributeEntry(value=value_of("SKU-001"), time=T0),),
            "dims": (ObjectAttributeEntry(value=value_of({"w": 10, "h": 2.5}), time=T0),),
        },
    )
    place = OcelEvent(
        id="e1",
        activity="place order",
        timestamp=T0,
        attributes={
            "channel": value_of("web"),
            "quantity": value_of(2),
            "express": value_of(True),
            "tags": value_of(["gift", "priority"]),
        },
        object_refs=frozenset({"o1", "i1"}),
    )
    pay = OcelEvent(
        id="e2",
        activity="pay order",
        timestamp=T0 + timedelta(hours=2, milliseconds=250),
        attributes={
            "channel": value_of("web"),
            "paid_at": value_of(T0 + timedelta(hours=2)),
        },
        object_refs=frozenset({"o1"}),
    )
    return OcelLog.from_items(
        [place, pay],
        [order, item],
        event_attribute_declarations={
            "channel": ValueKind.STRING,
            "quantity": ValueKind.INTEGER,
            "express": ValueKind.BOOLEAN,
            "tags": ValueKind.LIST,
            "paid_at": ValueKind.TIMESTAMP,
        },
        object_attribute_declarations={
            "status": ValueKind.STRING,
            "total": ValueKind.FLOAT,
            "sku": ValueKind.STRING,
            "dims": ValueKind.MAP,
        },
        global_attributes={
            "version": value_of("1.0"),
            "ordering": value_of("timestamp"),
        },
    )


def make_random_log(
    seed: int,
    num_events: int = 25,
    num_objects: int = 10,
    id_prefix: str = "",
) -> OcelLog:
    """Generate a realistic log with declared attributes and no dangling references."""
    fake = Faker()
    fake.seed_instance(seed)
    rng = random.Random(seed)

    objects = []
    for i in range(num_objects):
        created = fake.date_time_between(start_date=T0, end_date=T0 + timedelta(days=30), tzinfo=UTC)
        price_history = tuple(
            ObjectAttributeEntry(
                value=value_of(round(rng.uniform(1, 500), 2)),
                time=created + timedelta(hours=h),
            )
            for h in range(rng.randint(1, 3))
        )
        objects.append(OcelObject(
            id=f"{id_prefix}o{i}",
            type=rng.choice(OBJECT_TYPES),
            attributes={
                "label": (ObjectAttributeEntry(value=value_of(fake.catch_phrase()), time=created),),
                "price": price_history,
                "tags": (ObjectAttributeEntry(value=value_of(fake.words(nb=rng.randint(0, 3))), time=None),),
            },
        ))

    object_ids = [o.id for o in objects]
    events = []
    for i in range(num_events):
        events.append(OcelEvent(
            id=f"{id_prefix}e{i}",
            activity=rng.choice(ACTIVITIES),
            timestamp=fake.date_time_between(start_date=T0, end_date=T0 + timedelta(days=30), tzinfo=UTC),
            attributes={
                "resource": value_of(fake.user_name()),
                "quantity": value_of(rng.randint(1, 20)),
                "express": value_of(rng.random() < 0.3),
                "address": value_of({"city": fake.city(), "zip": fake.postcode()}),
            },
            object_refs=frozenset(rng.sample(object_ids, k=rng.randint(0, min(3, len(object_ids))))),
        ))

    log = OcelLog.from_items(
        events,
        objects,
        global_attributes={"version": value_of("1.0"), "ordering": value_of("timestamp")},
    )
    return log.with_inferred_declarations()


@pytest.fixture
def sample_log() -> OcelLog:
    return make_sample_log()


@pytest.fixture
def random_log_factory() -> Callable[..., OcelLog]:
    return make_random_log

from types import SimpleNamespace

import pytest

from lotetrace.models import Alert, SensorReading
from lotetrace.services.sensors.mqtt_pool import (
    BrokerConnectionPool,
    BrokerSupervisor,
    ConnectionKey,
    load_subscriptions,
    plan_reconciliation,
    request_refresh,
)

BROKER = ConnectionKey("broker.example", 8883, "farm-app")
LOCAL = ConnectionKey("localhost", 1883, None)


class FakeClient:
    def __init__(self, key):
        self.key = key
        self.userdata = None
        self.credentials = None
        self.tls = False
        self.delays = None
        self.target = None
        self.started = False
        self.stopped = False
        self.disconnected = False
        self.connected = False
        self.subscribed = []

    def user_data_set(self, userdata):
        self.userdata = userdata

    def username_pw_set(self, username, password=None):
        self.credentials = (username, password)

    def tls_set(self):
        self.tls = True

    def reconnect_delay_set(self, min_delay=1, max_delay=120):
        self.delays = (min_delay, max_delay)

    def connect_async(self, host, port, keepalive=60):
        self.target = (host, port, keepalive)

    def loop_start(self):
        self.started = True

    def loop_stop(self):
        self.stopped = True

    def disconnect(self):
        self.disconnected = True
        self.connected = False

    def is_connected(self):
        return self.connected

    def subscribe(self, topic):
        self.subscribed.append(topic)


class FakeFactory:
    def __init__(self):
        self.clients = []

    def __call__(self, key):
        client = FakeClient(key)
        self.clients.append(client)
        return client


@pytest.fixture
def factory():
    return FakeFactory()


@pytest.fixture
def pool(session_factory, factory):
    pool = BrokerConnectionPool(session_factory=session_factory, client_factory=factory)
    yield pool
    pool.shutdown()


def _broker_sensor(make_sensor, zone, topic, **kwargs):
    return make_sensor(
        zone,
        mqtt_enabled=True,
        mqtt_host=kwargs.pop("host", BROKER.host),
        mqtt_port=kwargs.pop("port", BROKER.port),
        mqtt_username=kwargs.pop("username", BROKER.username),
        mqtt_password=kwargs.pop("password", "secret"),
        mqtt_topic=topic,
        **kwargs,
    )


def test_plan_opens_missing_connections_and_topics():
    plan = plan_reconciliation({}, {BROKER: {"a", "b"}, LOCAL: {"c"}})

    assert set(plan.open) == {BROKER, LOCAL}
    assert plan.subscribe == {BROKER: ["a", "b"], LOCAL: ["c"]}


def test_plan_only_adds_new_topics():
    plan = plan_reconciliation({BROKER: {"a"}}, {BROKER: {"a", "b"}})

    assert plan.open == []
    assert plan.subscribe == {BROKER: ["b"]}


def test_plan_never_tears_down():
    plan = plan_reconciliation({BROKER: {"a", "b"}, LOCAL: {"c"}}, {BROKER: {"a"}})

    assert plan.is_empty


def test_reconcile_groups_sensors_by_broker(db, pool, factory, zones, make_sensor):
    _broker_sensor(make_sensor, zones["curing"], "farm/curing/temp")
    _broker_sensor(make_sensor, zones["curing"], "farm/curing/humidity", sensor_type="humidity")
    _broker_sensor(make_sensor, zones["breeding"], "barn/temp", host="localhost", port=1883, username=None)
    make_sensor(zones["breeding"], mqtt_enabled=False, mqtt_topic="ignored")
    _broker_sensor(make_sensor, zones["breeding"], "inactive/topic", is_active=False)

    plan = pool.reconcile(load_subscriptions(db))

    assert set(plan.open) == {BROKER, LOCAL}
    assert len(factory.clients) == 2
    remote = next(c for c in factory.clients if c.key == BROKER)
    assert remote.tls is True
    assert remote.credentials == ("farm-app", "secret")
    assert remote.target[:2] == ("broker.example", 8883)
    assert remote.started
    local = next(c for c in factory.clients if c.key == LOCAL)
    assert local.tls is False
    assert local.credentials is None
    assert pool.current_state() == {
        BROKER: {"farm/curing/temp", "farm/curing/humidity"},
        LOCAL: {"barn/temp"},
    }


def test_second_reconcile_reuses_connections(db, pool, factory, zones, make_sensor):
    _broker_sensor(make_sensor, zones["curing"], "farm/a")
    pool.reconcile(load_subscriptions(db))
    factory.clients[0].connected = True

    _broker_sensor(make_sensor, zones["curing"], "farm/b")
    plan = pool.reconcile(load_subscriptions(db))

    assert plan.open == []
    assert plan.subscribe == {BROKER: ["farm/b"]}
    assert len(factory.clients) == 1
    assert factory.clients[0].subscribed == ["farm/b"]


def test_on_connect_subscribes_known_topics(db, pool, factory, zones, make_sensor):
    _broker_sensor(make_sensor, zones["curing"], "farm/a")
    pool.reconcile(load_subscriptions(db))
    client = factory.clients[0]

    pool._on_connect(client, BROKER, {}, SimpleNamespace(is_failure=False), None)

    assert client.subscribed == ["farm/a"]


def test_message_is_ingested_and_evaluated(db, pool, zones, make_sensor):
    _broker_sensor(make_sensor, zones["curing"], "farm/+/temp", validation_max=30)
    pool.reconcile(load_subscriptions(db))

    stored = pool.handle_message(BROKER, "farm/room1/temp", b'{"value": 35}')

    assert stored == 1
    db.expire_all()
    assert db.query(SensorReading).count() == 1
    assert db.query(Alert).one().type == "max_breach"


def test_message_routed_to_every_matching_sensor(db, pool, zones, make_sensor):
    _broker_sensor(make_sensor, zones["curing"], "farm/temp")
    _broker_sensor(make_sensor, zones["curing"], "farm/#", field_path="readings[0]")
    pool.reconcile(load_subscriptions(db))

    stored = pool.handle_message(BROKER, "farm/temp", b'{"value": 12, "readings": [13]}')

    assert stored == 2
    db.expire_all()
    assert sorted(float(r.value) for r in db.query(SensorReading).all()) == [12.0, 13.0]


def test_bad_messages_are_dropped(db, pool, zones, make_sensor):
    _broker_sensor(make_sensor, zones["curing"], "farm/temp")
    pool.reconcile(load_subscriptions(db))

    assert pool.handle_message(BROKER, "farm/temp", b"not json") == 0
    assert pool.handle_message(BROKER, "farm/temp", b'{"other": 1}') == 0
    assert pool.handle_message(BROKER, "other/topic", b'{"value": 1}') == 0
    db.expire_all()
    assert db.query(SensorReading).count() == 0


def test_removed_sensor_is_no_longer_routed(db, pool, factory, zones, make_sensor):
    sensor = _broker_sensor(make_sensor, zones["curing"], "farm/temp")
    pool.reconcile(load_subscriptions(db))

    sensor.is_active = False
    db.commit()
    pool.reconcile(load_subscriptions(db))

    assert len(factory.clients) == 1
    assert not factory.clients[0].disconnected
    assert pool.handle_message(BROKER, "farm/temp", b'{"value": 1}') == 0


def test_supervisor_refresh_and_shutdown(db, session_factory, factory, zones, make_sensor):
    _broker_sensor(make_sensor, zones["curing"], "farm/temp")
    pool = BrokerConnectionPool(session_factory=session_factory, client_factory=factory)
    supervisor = BrokerSupervisor(pool, session_factory=session_factory, interval=3600)

    plan = supervisor.refresh_now()
    supervisor.shutdown()

    assert plan.open == [BROKER]
    assert factory.clients[0].stopped
    assert factory.clients[0].disconnected
    assert pool.current_state() == {}


def test_refresh_request_without_supervisor_is_noop():
    assert request_refresh() is False

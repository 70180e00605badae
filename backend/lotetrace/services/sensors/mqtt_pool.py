"""
MQTT connection pool for sensor ingestion

Sensors sharing (host, port, username) share one paho-mqtt client. The pool
is reconciled against the active sensor configuration at startup, every
MQTT_RECONCILE_INTERVAL_SECONDS and whenever a sensor's broker configuration
changes. Reconciliation only opens connections and adds subscriptions; a
sensor leaving the active set is just dropped from the routing table.
"""
import json
import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Set

import paho.mqtt.client as mqtt

from lotetrace.core.config import settings
from lotetrace.core.database import SessionLocal
from lotetrace.models.sensors import Sensor
from lotetrace.services.sensors.field_path import DEFAULT_FIELD_PATH, FieldPath, InvalidFieldPath
from lotetrace.services.sensors.ingestion_service import ingest_payload
from lotetrace.services.sensors.sensor_service import list_broker_sensors

logger = logging.getLogger(__name__)

TLS_PORT = 8883


@dataclass(frozen=True)
class ConnectionKey:
    host: str
    port: int
    username: Optional[str] = None

    def __str__(self):
        user = f"{self.username}@" if self.username else ""
        return f"{user}{self.host}:{self.port}"


@dataclass(frozen=True)
class SensorSubscription:
    """Broker configuration of one sensor, detached from the database session."""

    sensor_id: int
    key: ConnectionKey
    topic: str
    field_path: FieldPath
    password: Optional[str] = None

    @classmethod
    def from_sensor(cls, sensor: Sensor) -> Optional["SensorSubscription"]:
        host = sensor.mqtt_host or settings.MQTT_DEFAULT_HOST
        if not sensor.mqtt_enabled or not sensor.mqtt_topic or not host:
            return None
        try:
            path = FieldPath.compile(sensor.field_path or DEFAULT_FIELD_PATH)
        except InvalidFieldPath as e:
            logger.error("Sensor %s skipped: %s", sensor.id, e)
            return None
        return cls(
            sensor_id=sensor.id,
            key=ConnectionKey(host, sensor.mqtt_port or settings.MQTT_DEFAULT_PORT, sensor.mqtt_username or None),
            topic=sensor.mqtt_topic,
            field_path=path,
            password=sensor.mqtt_password,
        )


@dataclass
class ReconciliationPlan:
    open: List[ConnectionKey] = field(default_factory=list)
    subscribe: Dict[ConnectionKey, List[str]] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.open and not self.subscribe


def desired_topics(subscriptions: Iterable[SensorSubscription]) -> Dict[ConnectionKey, Set[str]]:
    desired: Dict[ConnectionKey, Set[str]] = {}
    for subscription in subscriptions:
        desired.setdefault(subscription.key, set()).add(subscription.topic)
    return desired


def plan_reconciliation(
    current: Mapping[ConnectionKey, Set[str]],
    desired: Mapping[ConnectionKey, Set[str]],
) -> ReconciliationPlan:
    """
    Connections to open and topics to subscribe so that `current` covers `desired`.

    Keys and topics present in `current` but not in `desired` are left alone.
    """
    plan = ReconciliationPlan()
    for key in sorted(desired, key=str):
        if key not in current:
            plan.open.append(key)
        missing = sorted(set(desired[key]) - set(current.get(key, set())))
        if missing:
            plan.subscribe[key] = missing
    return plan


def _default_client_factory(key: ConnectionKey):
    return mqtt.Client(mqtt.CallbackAPIVersion.VERSION2)


class BrokerConnectionPool:
    """Owns every broker client and the topic -> sensor routing table."""

    def __init__(
        self,
        session_factory: Callable = SessionLocal,
        client_factory: Callable = _default_client_factory,
        keepalive: int = settings.MQTT_KEEPALIVE,
        reconnect_min_delay: int = settings.MQTT_RECONNECT_MIN_DELAY,
        reconnect_max_delay: int = settings.MQTT_RECONNECT_MAX_DELAY,
    ):
        self._session_factory = session_factory
        self._client_factory = client_factory
        self._keepalive = keepalive
        self._reconnect_min_delay = reconnect_min_delay
        self._reconnect_max_delay = reconnect_max_delay

        self._lock = threading.RLock()
        self._clients: Dict[ConnectionKey, object] = {}
        self._subscriptions: Dict[ConnectionKey, Set[str]] = {}
        self._routes: Dict[ConnectionKey, List[SensorSubscription]] = {}

    # Stato

    def current_state(self) -> Dict[ConnectionKey, Set[str]]:
        with self._lock:
            return {key: set(topics) for key, topics in self._subscriptions.items()}

    def routes_for(self, key: ConnectionKey, topic: str) -> List[SensorSubscription]:
        with self._lock:
            routes = list(self._routes.get(key, []))
        return [route for route in routes if mqtt.topic_matches_sub(route.topic, topic)]

    def status(self) -> dict:
        with self._lock:
            return {
                "connections": len(self._clients),
                "routed_sensors": sum(len(routes) for routes in self._routes.values()),
                "brokers": [
                    {
                        "broker": str(key),
                        "connected": bool(client.is_connected()),
                        "topics": sorted(self._subscriptions.get(key, set())),
                    }
                    for key, client in self._clients.items()
                ],
            }

    # Riconciliazione

    def reconcile(self, subscriptions: Iterable[SensorSubscription]) -> ReconciliationPlan:
        subscriptions = list(subscriptions)
        desired = desired_topics(subscriptions)
        passwords = {s.key: s.password for s in subscriptions if s.password}

        with self._lock:
            plan = plan_reconciliation(self._subscriptions, desired)

            routes: Dict[ConnectionKey, List[SensorSubscription]] = {}
            for subscription in subscriptions:
                routes.setdefault(subscription.key, []).append(subscription)
            self._routes = routes

            failed = set()
            for key in plan.open:
                self._subscriptions[key] = set()
                try:
                    self._clients[key] = self._connect(key, passwords.get(key))
                except Exception as e:
                    # retried on the next reconciliation
                    logger.error("Failed to start MQTT client for %s: %s", key, e)
                    self._subscriptions.pop(key, None)
                    failed.add(key)

            for key, topics in plan.subscribe.items():
                if key in failed:
                    continue
                self._subscriptions.setdefault(key, set()).update(topics)
                client = self._clients.get(key)
                if client is not None and client.is_connected():
                    for topic in topics:
                        client.subscribe(topic)

        if not plan.is_empty:
            logger.info(
                "MQTT reconciliation: %d new connections, %d topic subscriptions",
                len(plan.open), sum(len(topics) for topics in plan.subscribe.values()),
            )
        return plan

    def _connect(self, key: ConnectionKey, password: Optional[str]):
        client = self._client_factory(key)
        client.user_data_set(key)
        if key.username:
            client.username_pw_set(key.username, password)
        if key.port == TLS_PORT:
            client.tls_set()
        client.reconnect_delay_set(min_delay=self._reconnect_min_delay, max_delay=self._reconnect_max_delay)
        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_message = self._on_message

        logger.info("Connecting to MQTT broker %s", key)
        client.connect_async(key.host, key.port, self._keepalive)
        client.loop_start()
        return client

    # Callback paho

    def _on_connect(self, client, userdata, flags, reason_code, properties=None):
        if reason_code.is_failure:
            logger.warning("MQTT broker %s refused connection: %s", userdata, reason_code)
            return
        with self._lock:
            topics = sorted(self._subscriptions.get(userdata, set()))
        for topic in topics:
            client.subscribe(topic)
        logger.info("Connected to MQTT broker %s, subscribed %d topics", userdata, len(topics))

    def _on_disconnect(self, client, userdata, flags, reason_code, properties=None):
        logger.warning("Disconnected from MQTT broker %s: %s", userdata, reason_code)

    def _on_message(self, client, userdata, msg):
        self.handle_message(userdata, msg.topic, msg.payload)

    # Messaggi

    def handle_message(self, key: ConnectionKey, topic: str, raw_payload: bytes) -> int:
        """Decode and ingest one broker message; returns the number of readings stored."""
        try:
            payload = json.loads(raw_payload.decode("utf-8") if isinstance(raw_payload, bytes) else raw_payload)
        except (UnicodeDecodeError, ValueError) as e:
            logger.warning("Dropped non-JSON message on %s from %s: %s", topic, key, e)
            return 0

        stored = 0
        for route in self.routes_for(key, topic):
            db = self._session_factory()
            try:
                sensor = db.query(Sensor).filter(Sensor.id == route.sensor_id, Sensor.is_active.is_(True)).first()
                if sensor is None:
                    continue
                if ingest_payload(db, sensor, payload, route.field_path) is not None:
                    stored += 1
                db.commit()
            except Exception:
                db.rollback()
                logger.exception("Failed to ingest message on %s for sensor %s", topic, route.sensor_id)
            finally:
                db.close()
        return stored

    def shutdown(self):
        with self._lock:
            clients = list(self._clients.items())
            self._clients.clear()
            self._subscriptions.clear()
            self._routes.clear()
        for key, client in clients:
            try:
                client.loop_stop()
                client.disconnect()
            except Exception as e:
                logger.warning("Error while disconnecting from %s: %s", key, e)
        logger.info("MQTT pool shut down (%d connections closed)", len(clients))


def load_subscriptions(db) -> List[SensorSubscription]:
    subscriptions = []
    for sensor in list_broker_sensors(db):
        subscription = SensorSubscription.from_sensor(sensor)
        if subscription is not None:
            subscriptions.append(subscription)
    return subscriptions


class BrokerSupervisor:
    """Background thread running pool reconciliation on a fixed interval."""

    def __init__(
        self,
        pool: BrokerConnectionPool,
        session_factory: Callable = SessionLocal,
        interval: float = settings.MQTT_RECONCILE_INTERVAL_SECONDS,
    ):
        self.pool = pool
        self._session_factory = session_factory
        self._interval = interval
        self._wake = threading.Event()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def refresh_now(self) -> ReconciliationPlan:
        db = self._session_factory()
        try:
            subscriptions = load_subscriptions(db)
        finally:
            db.close()
        return self.pool.reconcile(subscriptions)

    def _run(self):
        while not self._stop.is_set():
            try:
                self.refresh_now()
            except Exception:
                logger.exception("MQTT reconciliation failed")
            self._wake.wait(self._interval)
            self._wake.clear()

    def start(self):
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="mqtt-supervisor", daemon=True)
        self._thread.start()
        logger.info("MQTT supervisor started (interval %ss)", self._interval)

    def force_refresh(self):
        self._wake.set()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def shutdown(self, timeout: float = 5.0):
        self._stop.set()
        self._wake.set()
        if self._thread is not None:
            self._thread.join(timeout)
        self.pool.shutdown()


_supervisor: Optional[BrokerSupervisor] = None


def set_supervisor(supervisor: Optional[BrokerSupervisor]):
    global _supervisor
    _supervisor = supervisor


def get_supervisor() -> Optional[BrokerSupervisor]:
    return _supervisor


def request_refresh():
    """Ask the running supervisor to reconcile now; no-op when broker ingestion is off."""
    supervisor = _supervisor
    if supervisor is None or not supervisor.running:
        logger.debug("MQTT refresh requested but no supervisor is running")
        return False
    supervisor.force_refresh()
    return True

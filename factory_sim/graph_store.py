"""Graph-store collaborators: Neo4j driver wrapper, in-memory store, and the
fire-and-forget ``GraphSync`` the simulation talks to.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable

from dotenv import load_dotenv
from neo4j import GraphDatabase
from neo4j.exceptions import Neo4jError, ServiceUnavailable, SessionExpired

from .errors import ConfigurationError, PersistenceFailure

logger = logging.getLogger(__name__)

MERGE_STATION = """
MERGE (gnb:gNodeB {id: $id})
SET gnb.band = $band,
    gnb.load = $load,
    gnb.label = $label,
    gnb.status = $status,
    gnb.vendor = $vendor,
    gnb.x = $x, gnb.y = $y, gnb.z = $z
"""

MERGE_AGV = """
MERGE (agv:AGV {id: $id})
SET agv.task = $task,
    agv.imei = $imei,
    agv.label = $label,
    agv.speed = $speed,
    agv.sinr_db = $sinr_db,
    agv.status = $status,
    agv.rsrp_dbm = $rsrp_dbm,
    agv.throughput_mbps = $throughput_mbps,
    agv.battery_percentage = $battery_percentage,
    agv.x = $x, agv.y = $y, agv.z = $z
"""

CONNECT_AGV = """
MATCH (agv:AGV {id: $agv_id})
OPTIONAL MATCH (agv)-[r:CONNECTED_TO]->()
DELETE r
WITH agv
MATCH (gnb:gNodeB {id: $bs_id})
MERGE (agv)-[:CONNECTED_TO]->(gnb)
"""


class GraphStore:
    """Capabilities the simulation consumes from an external graph store."""

    def run_query(self, query: str, parameters: dict | None = None) -> list[dict]:
        raise NotImplementedError

    def persist_snapshot(self, stations: list[dict], agents: list[dict]) -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass


class Neo4jGraphStore(GraphStore):
    """Neo4j-backed store using the official driver."""

    def __init__(self, uri: str, user: str, password: str, database: str = "neo4j") -> None:
        self.uri = uri
        self.user = user
        self.password = password
        self.database = database
        self.driver = None

    @classmethod
    def from_env(cls, dotenv_path: str | None = None) -> Neo4jGraphStore:
        """Build from ``NEO4J_URI``/``NEO4J_USER``/``NEO4J_PASS`` (``.env`` honoured)."""
        load_dotenv(dotenv_path=dotenv_path)
        uri = os.getenv("NEO4J_URI")
        user = os.getenv("NEO4J_USER")
        password = os.getenv("NEO4J_PASS")
        if not uri or not user or not password:
            raise ConfigurationError(
                "Missing environment variables NEO4J_URI, NEO4J_USER or NEO4J_PASS. "
                "Check your .env file."
            )
        return cls(uri, user, password, os.getenv("NEO4J_DATABASE", "neo4j"))

    def connect(self):
        if not self.driver:
            self.driver = GraphDatabase.driver(self.uri, auth=(self.user, self.password))
        return self.driver

    def run_query(self, query: str, parameters: dict | None = None) -> list[dict]:
        try:
            with self.connect().session(database=self.database) as session:
                result = session.run(query, parameters or {})
                return [record.data() for record in result]
        except (Neo4jError, ServiceUnavailable, SessionExpired) as e:
            raise PersistenceFailure(f"Query failed: {e}") from e

    def persist_snapshot(self, stations: list[dict], agents: list[dict]) -> None:
        def _write(tx) -> None:
            for record in stations:
                tx.run(MERGE_STATION, record)
            for record in agents:
                tx.run(MERGE_AGV, record)

        try:
            with self.connect().session(database=self.database) as session:
                session.execute_write(_write)
        except (Neo4jError, ServiceUnavailable, SessionExpired) as e:
            raise PersistenceFailure(f"Snapshot write failed: {e}") from e

    def close(self) -> None:
        if self.driver:
            self.driver.close()
            self.driver = None
            logger.info("Neo4j driver closed.")


class MemoryGraphStore(GraphStore):
    """In-process store keeping the latest node attributes and associations.

    Understands the association query issued on handover; every other query
    is only logged in ``queries``.
    """

    def __init__(self) -> None:
        self.stations: dict[str, dict] = {}
        self.agents: dict[str, dict] = {}
        self.associations: dict[str, str] = {}
        self.queries: list[tuple[str, dict]] = []
        self.snapshots: int = 0

    def run_query(self, query: str, parameters: dict | None = None) -> list[dict]:
        params = dict(parameters or {})
        self.queries.append((query, params))
        if query == CONNECT_AGV:
            self.associations[params["agv_id"]] = params["bs_id"]
        return []

    def persist_snapshot(self, stations: list[dict], agents: list[dict]) -> None:
        for record in stations:
            self.stations[record["id"]] = dict(record)
        for record in agents:
            self.agents[record["id"]] = dict(record)
        self.snapshots += 1


class GraphSync:
    """Fire-and-forget bridge between the simulation tick and a ``GraphStore``.

    Calls are handed to a single background worker so a slow or failing
    store never stalls the tick. Failures are logged and dropped. With
    ``synchronous=True`` calls run inline (still never raising).
    """

    def __init__(self, store: GraphStore, synchronous: bool = False) -> None:
        self.store = store
        self.synchronous = synchronous
        self._executor: ThreadPoolExecutor | None = (
            None if synchronous else ThreadPoolExecutor(max_workers=1, thread_name_prefix="graph-sync")
        )
        self.submitted: int = 0
        self.failures: int = 0

    def _submit(self, label: str, fn: Callable[..., Any], *args: Any) -> Future | None:
        self.submitted += 1

        def _call() -> None:
            try:
                fn(*args)
            except Exception:
                self.failures += 1
                logger.exception("Graph store %s failed", label)

        if self._executor is None:
            _call()
            return None
        return self._executor.submit(_call)

    def record_association(self, agv_id: str, bs_id: str) -> Future | None:
        return self._submit(
            "association update", self.store.run_query,
            CONNECT_AGV, {"agv_id": agv_id, "bs_id": bs_id},
        )

    def push_snapshot(self, stations: list[dict], agents: list[dict]) -> Future | None:
        return self._submit("snapshot", self.store.persist_snapshot, stations, agents)

    def shutdown(self, close_store: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        if close_store:
            self.store.close()

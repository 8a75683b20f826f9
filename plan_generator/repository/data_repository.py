"""Repository layer responsible for all database access."""

from __future__ import annotations

import json
import sqlite3
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Optional

from plan_generator.domain.models import (
    PLAN_STATUS_DRAFT,
    PLAN_STATUS_MERGED,
    City,
    ClassificationRow,
    DraftPlan,
    GeneratedEvent,
    MergeResult,
    Node,
    PlanSummary,
    SeasonalityProfile,
    UnassignedCity,
)
from plan_generator.utils.config import Settings, get_settings
from plan_generator.utils.logger import get_logger


logger = get_logger(__name__)


class PersistenceError(RuntimeError):
    """Raised when a database operation fails."""


class PlanNotDraftError(PersistenceError):
    """Raised when a merge finds the plan already left draft status."""


_PLAN_COLUMNS = """
    p.id,
    p.account_id,
    p.carrier_id,
    p.product_id,
    p.start_date,
    p.end_date,
    p.total_events,
    p.calculated_events,
    p.max_events_per_week,
    p.unassigned_events,
    p.unassigned_breakdown,
    p.merge_strategy,
    p.status,
    p.created_by,
    p.generation_params,
    p.created_at,
    p.merged_at,
    (
        SELECT COUNT(*)
        FROM GeneratedPlanDetails AS d
        WHERE d.plan_id = p.id
    ) AS event_count
"""


def _row_to_unassigned(item: dict[str, Any]) -> UnassignedCity:
    return UnassignedCity(
        city_id=int(item["city_id"]),
        city_name=str(item["city_name"]),
        unassigned_events=int(item["unassigned_events"]),
        by_origin_tier={str(key): int(value) for key, value in item.get("by_origin_tier", {}).items()},
    )


def _row_to_plan_summary(row: sqlite3.Row) -> PlanSummary:
    return PlanSummary(
        plan_id=int(row["id"]),
        account_id=int(row["account_id"]),
        carrier_id=int(row["carrier_id"]),
        product_id=int(row["product_id"]),
        start_date=date.fromisoformat(str(row["start_date"])),
        end_date=date.fromisoformat(str(row["end_date"])),
        annual_target=int(row["total_events"]),
        calculated_events=int(row["calculated_events"]),
        max_events_per_week=int(row["max_events_per_week"]),
        unassigned_events=int(row["unassigned_events"]),
        unassigned_breakdown=[
            _row_to_unassigned(item) for item in json.loads(row["unassigned_breakdown"] or "[]")
        ],
        merge_strategy=str(row["merge_strategy"]),
        status=str(row["status"]),
        created_by=int(row["created_by"]),
        generation_params=json.loads(row["generation_params"] or "{}"),
        created_at=str(row["created_at"]),
        merged_at=None if row["merged_at"] is None else str(row["merged_at"]),
        event_count=int(row["event_count"]),
    )


class DataRepository:
    """Encapsulates SQLite access so business logic stays storage-agnostic."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self._settings = settings or get_settings()
        self._db_path = Path(self._settings.database_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def database_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        connection = sqlite3.connect(self._db_path)
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON;")
        return connection

    def initialize_database(self) -> None:
        """Create all persistence artifacts before API startup."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS CarrierProducts (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        carrier_id INTEGER NOT NULL,
                        product_id INTEGER NOT NULL,
                        active INTEGER NOT NULL DEFAULT 1 CHECK (active IN (0,1)),
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                        UNIQUE (carrier_id, product_id)
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Cities (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        account_id INTEGER NOT NULL,
                        name TEXT NOT NULL,
                        tier TEXT NOT NULL CHECK (tier IN ('A','B','C')),
                        active INTEGER NOT NULL DEFAULT 1 CHECK (active IN (0,1))
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Nodes (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        account_id INTEGER NOT NULL,
                        code TEXT NOT NULL UNIQUE,
                        city_id INTEGER NOT NULL,
                        active INTEGER NOT NULL DEFAULT 1 CHECK (active IN (0,1)),
                        operator_available INTEGER NOT NULL DEFAULT 1
                            CHECK (operator_available IN (0,1)),
                        FOREIGN KEY (city_id) REFERENCES Cities(id)
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS ClassificationMatrix (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        account_id INTEGER NOT NULL,
                        destination_tier TEXT NOT NULL CHECK (destination_tier IN ('A','B','C')),
                        pct_from_a REAL NOT NULL DEFAULT 0,
                        pct_from_b REAL NOT NULL DEFAULT 0,
                        pct_from_c REAL NOT NULL DEFAULT 0,
                        UNIQUE (account_id, destination_tier)
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS ProductSeasonality (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        account_id INTEGER NOT NULL,
                        product_id INTEGER NOT NULL,
                        year INTEGER NOT NULL,
                        month INTEGER NOT NULL CHECK (month BETWEEN 1 AND 12),
                        percentage REAL NOT NULL DEFAULT 0 CHECK (percentage >= 0),
                        UNIQUE (account_id, product_id, year, month)
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS GeneratedPlans (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        account_id INTEGER NOT NULL,
                        carrier_id INTEGER NOT NULL,
                        product_id INTEGER NOT NULL,
                        start_date TEXT NOT NULL,
                        end_date TEXT NOT NULL,
                        total_events INTEGER NOT NULL,
                        calculated_events INTEGER NOT NULL,
                        max_events_per_week INTEGER NOT NULL,
                        unassigned_events INTEGER NOT NULL DEFAULT 0,
                        unassigned_breakdown TEXT NOT NULL DEFAULT '[]',
                        merge_strategy TEXT NOT NULL CHECK (merge_strategy IN ('add','replace')),
                        status TEXT NOT NULL DEFAULT 'draft',
                        created_by INTEGER NOT NULL,
                        generation_params TEXT NOT NULL DEFAULT '{}',
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP,
                        merged_at DATETIME
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS GeneratedPlanDetails (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        plan_id INTEGER NOT NULL,
                        origin_node TEXT NOT NULL,
                        destination_node TEXT NOT NULL,
                        scheduled_date TEXT NOT NULL,
                        origin_city_id INTEGER NOT NULL,
                        destination_city_id INTEGER NOT NULL,
                        FOREIGN KEY (plan_id) REFERENCES GeneratedPlans(id) ON DELETE CASCADE
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE TABLE IF NOT EXISTS Events (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        account_id INTEGER NOT NULL,
                        carrier_id INTEGER NOT NULL,
                        product_id INTEGER NOT NULL,
                        origin_node TEXT NOT NULL,
                        destination_node TEXT NOT NULL,
                        scheduled_date TEXT NOT NULL,
                        creation_reason TEXT NOT NULL DEFAULT 'programado',
                        status TEXT NOT NULL DEFAULT 'PENDING',
                        notes TEXT,
                        created_at DATETIME DEFAULT CURRENT_TIMESTAMP
                    );
                    """
                )

                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_nodes_account_city
                    ON Nodes(account_id, city_id);
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_plan_details_plan
                    ON GeneratedPlanDetails(plan_id);
                    """
                )
                cursor.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_events_scope_status
                    ON Events(account_id, carrier_id, product_id, status);
                    """
                )
                conn.commit()
            logger.info("Database initialized at %s", self._db_path)
        except sqlite3.Error as exc:
            raise PersistenceError(f"Database initialization failed: {exc}") from exc

    def seed_demo_data(self) -> None:
        """Seed a demo account topology only when it has no cities yet."""
        account_id = self._settings.demo_account_id
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    "SELECT COUNT(*) AS count FROM Cities WHERE account_id = ?;",
                    (account_id,),
                )
                if int(cursor.fetchone()["count"]) > 0:
                    logger.info("Demo data already present; skipping seed")
                    return

            self.link_carrier_product(
                self._settings.demo_carrier_id,
                self._settings.demo_product_id,
            )
            cities = [
                ("Madrid", "A", "MAD"),
                ("Barcelona", "A", "BCN"),
                ("Valencia", "B", "VLC"),
                ("Sevilla", "B", "SVQ"),
                ("Bilbao", "B", "BIO"),
                ("Zaragoza", "C", "ZAZ"),
                ("Murcia", "C", "MJV"),
                ("Palma", "C", "PMI"),
                ("Vigo", "C", "VGO"),
                ("Granada", "C", "GRX"),
            ]
            node_count = 0
            for name, tier, prefix in cities:
                city_id = self.create_city(account_id, name, tier)
                nodes_per_city = {"A": 4, "B": 3, "C": 2}[tier]
                for index in range(1, nodes_per_city + 1):
                    self.create_node(account_id, f"{prefix}-{index:03d}", city_id)
                    node_count += 1

            for tier, pct_a, pct_b, pct_c in (
                ("A", 50.0, 30.0, 20.0),
                ("B", 40.0, 35.0, 25.0),
                ("C", 30.0, 30.0, 40.0),
            ):
                self.save_classification_row(
                    account_id,
                    ClassificationRow(
                        destination_tier=tier,
                        pct_from_a=pct_a,
                        pct_from_b=pct_b,
                        pct_from_c=pct_c,
                    ),
                )

            self.save_seasonality(
                account_id,
                self._settings.demo_product_id,
                datetime.now(timezone.utc).year,
                SeasonalityProfile(
                    percentages=(7.0, 7.0, 8.0, 8.0, 8.5, 8.5, 7.0, 6.0, 9.0, 9.0, 10.0, 12.0)
                ),
            )
            logger.info(
                "Demo seed completed | account_id=%s | cities=%s | nodes=%s",
                account_id,
                len(cities),
                node_count,
            )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Demo data seeding failed: {exc}") from exc

    def link_carrier_product(self, carrier_id: int, product_id: int, active: bool = True) -> int:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO CarrierProducts (carrier_id, product_id, active)
                VALUES (?, ?, ?)
                ON CONFLICT (carrier_id, product_id) DO UPDATE SET active = excluded.active;
                """,
                (carrier_id, product_id, int(active)),
            )
            conn.commit()
            return int(cursor.lastrowid)

    def create_city(self, account_id: int, name: str, tier: str, active: bool = True) -> int:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "INSERT INTO Cities (account_id, name, tier, active) VALUES (?, ?, ?, ?);",
                (account_id, name, tier, int(active)),
            )
            conn.commit()
            return int(cursor.lastrowid)

    def create_node(
        self,
        account_id: int,
        code: str,
        city_id: int,
        active: bool = True,
        operator_available: bool = True,
    ) -> int:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO Nodes (account_id, code, city_id, active, operator_available)
                VALUES (?, ?, ?, ?, ?);
                """,
                (account_id, code, city_id, int(active), int(operator_available)),
            )
            conn.commit()
            return int(cursor.lastrowid)

    def save_classification_row(self, account_id: int, row: ClassificationRow) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO ClassificationMatrix (
                    account_id,
                    destination_tier,
                    pct_from_a,
                    pct_from_b,
                    pct_from_c
                )
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT (account_id, destination_tier) DO UPDATE SET
                    pct_from_a = excluded.pct_from_a,
                    pct_from_b = excluded.pct_from_b,
                    pct_from_c = excluded.pct_from_c;
                """,
                (account_id, row.destination_tier, row.pct_from_a, row.pct_from_b, row.pct_from_c),
            )
            conn.commit()

    def save_seasonality(
        self,
        account_id: int,
        product_id: int,
        year: int,
        profile: SeasonalityProfile,
    ) -> None:
        with self._connect() as conn:
            conn.executemany(
                """
                INSERT INTO ProductSeasonality (account_id, product_id, year, month, percentage)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT (account_id, product_id, year, month) DO UPDATE SET
                    percentage = excluded.percentage;
                """,
                [
                    (account_id, product_id, year, month, profile.weight_for(month))
                    for month in range(1, 13)
                ],
            )
            conn.commit()

    def is_carrier_product_linked(self, carrier_id: int, product_id: int) -> bool:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT id
                FROM CarrierProducts
                WHERE carrier_id = ? AND product_id = ? AND active = 1;
                """,
                (carrier_id, product_id),
            )
            return cursor.fetchone() is not None

    def list_classification_rows(self, account_id: int) -> list[ClassificationRow]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT destination_tier, pct_from_a, pct_from_b, pct_from_c
                FROM ClassificationMatrix
                WHERE account_id = ?
                ORDER BY destination_tier ASC;
                """,
                (account_id,),
            )
            return [
                ClassificationRow(
                    destination_tier=str(row["destination_tier"]),
                    pct_from_a=float(row["pct_from_a"]),
                    pct_from_b=float(row["pct_from_b"]),
                    pct_from_c=float(row["pct_from_c"]),
                )
                for row in cursor.fetchall()
            ]

    def list_active_cities(self, account_id: int) -> list[City]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT id, name, tier
                FROM Cities
                WHERE account_id = ? AND active = 1
                ORDER BY id ASC;
                """,
                (account_id,),
            )
            return [
                City(city_id=int(row["id"]), name=str(row["name"]), tier=str(row["tier"]))
                for row in cursor.fetchall()
            ]

    def get_seasonality(
        self,
        account_id: int,
        product_id: int,
        year: int,
    ) -> Optional[SeasonalityProfile]:
        """Return the product's monthly weights for `year`, or None if never configured."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT month, percentage
                FROM ProductSeasonality
                WHERE account_id = ? AND product_id = ? AND year = ?;
                """,
                (account_id, product_id, year),
            )
            rows = cursor.fetchall()
        if not rows:
            return None
        percentages = [0.0] * 12
        for row in rows:
            percentages[int(row["month"]) - 1] = float(row["percentage"] or 0.0)
        return SeasonalityProfile(percentages=tuple(percentages))

    def list_active_topology(self, account_id: int) -> list[Node]:
        """Return active nodes whose operator is available, with the city's tier."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT n.code, n.city_id, c.tier, n.active, n.operator_available
                FROM Nodes AS n
                INNER JOIN Cities AS c ON c.id = n.city_id
                WHERE n.account_id = ?
                  AND n.active = 1
                  AND n.operator_available = 1
                ORDER BY n.code ASC;
                """,
                (account_id,),
            )
            return [
                Node(
                    code=str(row["code"]),
                    city_id=int(row["city_id"]),
                    tier=str(row["tier"]),
                    active=bool(row["active"]),
                    has_active_operator=bool(row["operator_available"]),
                )
                for row in cursor.fetchall()
            ]

    def save_draft_plan(self, plan: DraftPlan) -> int:
        """Persist plan header and every generated row in one transaction."""
        request = plan.request
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    INSERT INTO GeneratedPlans (
                        account_id,
                        carrier_id,
                        product_id,
                        start_date,
                        end_date,
                        total_events,
                        calculated_events,
                        max_events_per_week,
                        unassigned_events,
                        unassigned_breakdown,
                        merge_strategy,
                        status,
                        created_by,
                        generation_params
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
                    """,
                    (
                        request.account_id,
                        request.carrier_id,
                        request.product_id,
                        request.start_date.isoformat(),
                        request.end_date.isoformat(),
                        request.annual_target,
                        plan.calculated_events,
                        request.max_events_per_week,
                        plan.total_unassigned,
                        json.dumps([city.to_dict() for city in plan.unassigned]),
                        request.merge_strategy,
                        plan.status,
                        request.requested_by,
                        json.dumps(plan.generation_params),
                    ),
                )
                plan_id = int(cursor.lastrowid)
                cursor.executemany(
                    """
                    INSERT INTO GeneratedPlanDetails (
                        plan_id,
                        origin_node,
                        destination_node,
                        scheduled_date,
                        origin_city_id,
                        destination_city_id
                    )
                    VALUES (?, ?, ?, ?, ?, ?);
                    """,
                    [
                        (
                            plan_id,
                            event.origin_node_code,
                            event.destination_node_code,
                            event.scheduled_date.isoformat(),
                            event.origin_city_id,
                            event.destination_city_id,
                        )
                        for event in plan.events
                    ],
                )
                conn.commit()
            return plan_id
        except sqlite3.Error as exc:
            raise PersistenceError(f"Draft plan persistence failed: {exc}") from exc

    def list_plans(
        self,
        account_id: Optional[int] = None,
        status: Optional[str] = None,
    ) -> list[PlanSummary]:
        clauses: list[str] = []
        params: list[Any] = []
        if account_id is not None:
            clauses.append("p.account_id = ?")
            params.append(account_id)
        if status is not None:
            clauses.append("p.status = ?")
            params.append(status)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT {_PLAN_COLUMNS}
                FROM GeneratedPlans AS p
                {where}
                ORDER BY p.created_at DESC, p.id DESC;
                """,
                tuple(params),
            )
            return [_row_to_plan_summary(row) for row in cursor.fetchall()]

    def get_plan(self, plan_id: int) -> Optional[PlanSummary]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT {_PLAN_COLUMNS}
                FROM GeneratedPlans AS p
                WHERE p.id = ?;
                """,
                (plan_id,),
            )
            row = cursor.fetchone()
            if row is None:
                return None
            return _row_to_plan_summary(row)

    def list_plan_events(self, plan_id: int) -> list[GeneratedEvent]:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT
                    origin_node,
                    destination_node,
                    scheduled_date,
                    origin_city_id,
                    destination_city_id
                FROM GeneratedPlanDetails
                WHERE plan_id = ?
                ORDER BY id ASC;
                """,
                (plan_id,),
            )
            return [
                GeneratedEvent(
                    origin_node_code=str(row["origin_node"]),
                    destination_node_code=str(row["destination_node"]),
                    scheduled_date=date.fromisoformat(str(row["scheduled_date"])),
                    origin_city_id=int(row["origin_city_id"]),
                    destination_city_id=int(row["destination_city_id"]),
                )
                for row in cursor.fetchall()
            ]

    def delete_plan(self, plan_id: int) -> bool:
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                cursor.execute("DELETE FROM GeneratedPlans WHERE id = ?;", (plan_id,))
                conn.commit()
                return cursor.rowcount > 0
        except sqlite3.Error as exc:
            raise PersistenceError(f"Plan deletion failed: {exc}") from exc

    def merge_plan(self, plan: PlanSummary) -> MergeResult:
        """Copy a draft's rows into live events and mark the plan merged."""
        try:
            with self._connect() as conn:
                cursor = conn.cursor()
                replaced = 0
                if plan.merge_strategy == "replace":
                    cursor.execute(
                        """
                        DELETE FROM Events
                        WHERE account_id = ?
                          AND carrier_id = ?
                          AND product_id = ?
                          AND status = 'PENDING';
                        """,
                        (plan.account_id, plan.carrier_id, plan.product_id),
                    )
                    replaced = cursor.rowcount

                cursor.execute(
                    """
                    INSERT INTO Events (
                        account_id,
                        carrier_id,
                        product_id,
                        origin_node,
                        destination_node,
                        scheduled_date,
                        creation_reason,
                        status,
                        notes
                    )
                    SELECT ?, ?, ?, origin_node, destination_node, scheduled_date,
                           'programado', 'PENDING', ?
                    FROM GeneratedPlanDetails
                    WHERE plan_id = ?
                    ORDER BY id ASC;
                    """,
                    (
                        plan.account_id,
                        plan.carrier_id,
                        plan.product_id,
                        f"Generated from intelligent plan #{plan.plan_id}",
                        plan.plan_id,
                    ),
                )
                inserted = cursor.rowcount

                cursor.execute(
                    """
                    UPDATE GeneratedPlans
                    SET status = ?, merged_at = ?
                    WHERE id = ? AND status = ?;
                    """,
                    (
                        PLAN_STATUS_MERGED,
                        datetime.now(timezone.utc).isoformat(),
                        plan.plan_id,
                        PLAN_STATUS_DRAFT,
                    ),
                )
                if cursor.rowcount != 1:
                    conn.rollback()
                    raise PlanNotDraftError(f"Plan {plan.plan_id} is no longer a draft")
                conn.commit()
            return MergeResult(
                plan_id=plan.plan_id,
                merge_strategy=plan.merge_strategy,
                inserted_events=inserted,
                replaced_events=replaced,
            )
        except sqlite3.Error as exc:
            raise PersistenceError(f"Plan merge failed: {exc}") from exc

    def create_event(
        self,
        account_id: int,
        carrier_id: int,
        product_id: int,
        origin_node: str,
        destination_node: str,
        scheduled_date: str,
        status: str = "PENDING",
    ) -> int:
        """Insert a live event row and return the created id."""
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                INSERT INTO Events (
                    account_id,
                    carrier_id,
                    product_id,
                    origin_node,
                    destination_node,
                    scheduled_date,
                    status
                )
                VALUES (?, ?, ?, ?, ?, ?, ?);
                """,
                (account_id, carrier_id, product_id, origin_node, destination_node, scheduled_date, status),
            )
            conn.commit()
            return int(cursor.lastrowid)

    def count_events(
        self,
        account_id: int,
        carrier_id: int,
        product_id: int,
        status: Optional[str] = None,
    ) -> int:
        query = """
            SELECT COUNT(*) AS count
            FROM Events
            WHERE account_id = ? AND carrier_id = ? AND product_id = ?
        """
        params: list[Any] = [account_id, carrier_id, product_id]
        if status is not None:
            query += " AND status = ?"
            params.append(status)
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute(query + ";", tuple(params))
            return int(cursor.fetchone()["count"])

    def count_plans(self) -> int:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) AS count FROM GeneratedPlans;")
            return int(cursor.fetchone()["count"])

    def count_plan_details(self) -> int:
        with self._connect() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT COUNT(*) AS count FROM GeneratedPlanDetails;")
            return int(cursor.fetchone()["count"])

from __future__ import annotations

import json
from dataclasses import asdict
from datetime import date, datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Awaitable, Callable

import asyncpg  # type: ignore[import-untyped]
from asyncpg import exceptions as pg_exc
from opentelemetry import trace

from campsift.core.config import get_settings
from campsift.services.batches import BatchOptions, BatchReport, page_keys, process_keys
from campsift.services.dedupe import (
    find_cross_source_matches,
    generate_dedupe_key,
    plan_within_source_merges,
    similarity,
    snapshot_from_row,
)
from campsift.services.monitor import (
    MonitorThresholds,
    ZeroPriceStats,
    evaluate_source,
    source_health_from_row,
)
from campsift.services.parsing import parse_iso_date
from campsift.services.quality import calculate_source_quality
from campsift.services.status import PUBLIC_STATUSES, determine_session_status, is_publicly_visible
from campsift.services.validation import ValidationResult, validate_session


class RepositoryError(Exception):
    """Base repository error."""


class RepositoryUnavailableError(RepositoryError):
    """Raised when the database is unavailable or not configured."""


class RepositoryNotFoundError(RepositoryError):
    """Raised when the requested entity does not exist."""


class RepositoryValidationError(RepositoryError):
    """Raised when payload validation fails before persistence."""


BATCH_ISOLATED_ERRORS: tuple[type[BaseException], ...] = (RepositoryError, asyncpg.PostgresError)
RESCRAPE_SIMILARITY_THRESHOLD = 0.8

tracer = trace.get_tracer(__name__)

_SESSION_COLUMNS = """
  s.id::text as id,
  s.source_id::text as source_id,
  s.city_id,
  s.organization_id,
  s.camp_id,
  s.camp_name,
  s.organization_name,
  s.status,
  s.name,
  s.description,
  s.category,
  s.categories,
  s.start_date,
  s.end_date,
  s.is_flexible,
  s.drop_off_hour,
  s.drop_off_minute,
  s.pick_up_hour,
  s.pick_up_minute,
  s.location,
  s.min_age,
  s.max_age,
  s.min_grade,
  s.max_grade,
  s.price_in_cents,
  s.price_raw,
  s.registration_url,
  s.image_urls,
  s.source_product_id,
  s.source_session_id,
  s.completeness_score,
  s.missing_fields,
  s.validation_errors,
  s.dedupe_key,
  s.last_scraped_at,
  s.created_at,
  s.updated_at
"""

_SOURCE_COLUMNS = """
  id::text as id,
  name,
  url,
  city_id,
  organization_id,
  organization_name,
  scraper_module,
  scraper_code,
  is_active,
  data_quality_score,
  quality_tier,
  total_runs,
  successful_runs,
  consecutive_failures,
  success_rate,
  last_success_at,
  last_failure_at,
  last_error,
  needs_regeneration,
  updated_at
"""


class PostgresRepository:
    def __init__(
        self,
        database_url: str | None,
        min_pool_size: int,
        max_pool_size: int,
        *,
        monitor_thresholds: MonitorThresholds | None = None,
        zero_price_lookback_days: int = 30,
        cross_source_similarity_threshold: float = 0.85,
        maintenance_max_batch_size: int = 500,
        needs_regeneration_after_failures: int = 3,
    ) -> None:
        self.database_url = database_url
        self.min_pool_size = min_pool_size
        self.max_pool_size = max_pool_size
        self.monitor_thresholds = monitor_thresholds or MonitorThresholds()
        self.zero_price_lookback_days = max(1, zero_price_lookback_days)
        self.cross_source_similarity_threshold = cross_source_similarity_threshold
        self.maintenance_max_batch_size = max(1, maintenance_max_batch_size)
        self.needs_regeneration_after_failures = max(1, needs_regeneration_after_failures)
        self._pool: asyncpg.Pool | None = None

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None

    async def record_session(self, *, source_id: str, candidate: dict[str, Any]) -> dict[str, Any]:
        validation = validate_session(candidate)
        data = validation.normalized_data
        if not data.name:
            raise RepositoryValidationError("name is required")

        status = determine_session_status(
            validation.completeness_score,
            price_in_cents=data.price_in_cents,
            price_raw=data.price_raw,
        )
        start_date = parse_iso_date(data.start_date)
        end_date = parse_iso_date(data.end_date)
        errors_json = json.dumps([asdict(error) for error in validation.errors])
        values = [
            data.name,
            data.description,
            data.category,
            data.categories,
            start_date,
            end_date,
            data.is_flexible,
            data.drop_off_hour,
            data.drop_off_minute,
            data.pick_up_hour,
            data.pick_up_minute,
            data.location,
            data.min_age,
            data.max_age,
            data.min_grade,
            data.max_grade,
            data.price_in_cents,
            data.price_raw,
            data.registration_url,
            data.image_urls,
            data.source_product_id,
            data.source_session_id,
            validation.completeness_score,
            validation.missing_fields,
            errors_json,
            status,
        ]

        pool = await self._get_pool()
        try:
            async with pool.acquire() as conn:
                async with conn.transaction():
                    try:
                        source = await conn.fetchrow(
                            """
                            select id::text as id, city_id, organization_id, organization_name
                            from scrape_sources
                            where id = $1::uuid
                            """,
                            source_id,
                        )
                    except (pg_exc.InvalidTextRepresentationError, asyncpg.DataError) as exc:
                        raise RepositoryNotFoundError("source not found") from exc
                    if source is None:
                        raise RepositoryNotFoundError("source not found")

                    dedupe_key = generate_dedupe_key(source["id"], data.name, data.start_date)
                    existing_id = None
                    if start_date is not None:
                        existing_id = await self._find_existing_session(
                            conn,
                            source_id=source["id"],
                            name=data.name,
                            dedupe_key=dedupe_key,
                            start_date=start_date,
                        )
                    if existing_id is not None:
                        session_id = await conn.fetchval(
                            """
                            update sessions
                            set
                              name = $2,
                              description = $3,
                              category = $4,
                              categories = $5::text[],
                              start_date = $6,
                              end_date = $7,
                              is_flexible = $8,
                              drop_off_hour = $9,
                              drop_off_minute = $10,
                              pick_up_hour = $11,
                              pick_up_minute = $12,
                              location = $13,
                              min_age = $14,
                              max_age = $15,
                              min_grade = $16,
                              max_grade = $17,
                              price_in_cents = $18,
                              price_raw = $19,
                              registration_url = $20,
                              image_urls = $21::text[],
                              source_product_id = $22,
                              source_session_id = $23,
                              completeness_score = $24,
                              missing_fields = $25::text[],
                              validation_errors = $26::jsonb,
                              status = $27,
                              camp_name = $2,
                              dedupe_key = $28,
                              last_scraped_at = now(),
                              updated_at = now()
                            where id = $1::uuid
                            returning id::text
                            """,
                            existing_id,
                            *values,
                            dedupe_key,
                        )
                        created = False
                    else:
                        session_id = await conn.fetchval(
                            """
                            insert into sessions (
                              name,
                              description,
                              category,
                              categories,
                              start_date,
                              end_date,
                              is_flexible,
                              drop_off_hour,
                              drop_off_minute,
                              pick_up_hour,
                              pick_up_minute,
                              location,
                              min_age,
                              max_age,
                              min_grade,
                              max_grade,
                              price_in_cents,
                              price_raw,
                              registration_url,
                              image_urls,
                              source_product_id,
                              source_session_id,
                              completeness_score,
                              missing_fields,
                              validation_errors,
                              status,
                              source_id,
                              city_id,
                              organization_id,
                              organization_name,
                              camp_name,
                              dedupe_key
                            )
                            values (
                              $1, $2, $3, $4::text[], $5, $6, $7, $8, $9, $10, $11, $12, $13, $14, $15, $16,
                              $17, $18, $19, $20::text[], $21, $22, $23, $24::text[], $25::jsonb, $26,
                              $27::uuid, $28, $29, $30, $1, $31
                            )
                            returning id::text
                            """,
                            *values,
                            source_id,
                            source["city_id"],
                            source["organization_id"],
                            source["organization_name"],
                            dedupe_key,
                        )
                        created = True

                    row = await conn.fetchrow(
                        f"select {_SESSION_COLUMNS} from sessions s where s.id = $1::uuid",
                        session_id,
                    )
        except asyncpg.DataError as exc:
            raise RepositoryValidationError(f"session values rejected by the database: {exc}") from exc

        return {
            "created": created,
            "session": self._session_row_to_dict(row),
            "validation": self._validation_to_dict(validation),
        }

    @staticmethod
    async def _find_existing_session(
        conn: asyncpg.Connection,
        *,
        source_id: str,
        name: str,
        dedupe_key: str,
        start_date: date,
    ) -> str | None:
        rows = await conn.fetch(
            """
            select id::text as id, name, dedupe_key
            from sessions
            where source_id = $1::uuid and start_date = $2
            order by created_at asc, id asc
            for update
            """,
            source_id,
            start_date,
        )
        for row in rows:
            if row["dedupe_key"] == dedupe_key:
                return row["id"]
        for row in rows:
            if similarity(row["name"], name) > RESCRAPE_SIMILARITY_THRESHOLD:
                return row["id"]
        return None

    async def list_sessions(
        self,
        *,
        limit: int,
        offset: int,
        status: str | None = None,
        source_id: str | None = None,
        visible_only: bool = False,
    ) -> list[dict[str, Any]]:
        pool = await self._get_pool()
        conditions: list[str] = []
        params: list[Any] = []

        def bind(value: Any) -> str:
            params.append(value)
            return f"${len(params)}"

        if status:
            conditions.append(f"s.status = {bind(status)}")
        if visible_only:
            conditions.append(f"s.status = any({bind(sorted(PUBLIC_STATUSES))}::text[])")
        normalized_source_id = self._coerce_text(source_id)
        if normalized_source_id:
            conditions.append(f"s.source_id = {bind(normalized_source_id)}::uuid")

        where_sql = " and ".join(conditions) if conditions else "true"
        limit_token = bind(max(1, min(limit, 1000)))
        offset_token = bind(max(0, offset))
        try:
            rows = await pool.fetch(
                f"""
                select {_SESSION_COLUMNS}
                from sessions s
                where {where_sql}
                order by s.created_at desc, s.id asc
                limit {limit_token}
                offset {offset_token}
                """,
                *params,
            )
        except (pg_exc.InvalidTextRepresentationError, asyncpg.DataError) as exc:
            raise RepositoryValidationError("source_id must be a valid UUID") from exc
        return [self._session_row_to_dict(row) for row in rows]

    async def get_source(self, source_id: str) -> dict[str, Any]:
        pool = await self._get_pool()
        try:
            row = await pool.fetchrow(
                f"select {_SOURCE_COLUMNS} from scrape_sources where id = $1::uuid",
                source_id,
            )
        except (pg_exc.InvalidTextRepresentationError, asyncpg.DataError) as exc:
            raise RepositoryNotFoundError("source not found") from exc
        if row is None:
            raise RepositoryNotFoundError("source not found")
        return self._source_row_to_dict(row)

    async def record_scrape_run(self, *, source_id: str, success: bool, error: str | None = None) -> dict[str, Any]:
        pool = await self._get_pool()
        try:
            row = await pool.fetchrow(
                f"""
                update scrape_sources
                set
                  total_runs = total_runs + 1,
                  successful_runs = successful_runs + case when $2 then 1 else 0 end,
                  consecutive_failures = case when $2 then 0 else consecutive_failures + 1 end,
                  success_rate = (successful_runs + case when $2 then 1 else 0 end)::double precision
                    / (total_runs + 1),
                  last_success_at = case when $2 then now() else last_success_at end,
                  last_failure_at = case when $2 then last_failure_at else now() end,
                  last_error = case when $2 then null else $3 end,
                  needs_regeneration = case when $2 then false else consecutive_failures + 1 >= $4 end,
                  updated_at = now()
                where id = $1::uuid
                returning {_SOURCE_COLUMNS}
                """,
                source_id,
                success,
                self._coerce_text(error),
                self.needs_regeneration_after_failures,
            )
        except (pg_exc.InvalidTextRepresentationError, asyncpg.DataError) as exc:
            raise RepositoryNotFoundError("source not found") from exc
        if row is None:
            raise RepositoryNotFoundError("source not found")
        return self._source_row_to_dict(row)

    async def get_source_quality(self, source_id: str) -> dict[str, Any]:
        source = await self.get_source(source_id)
        pool = await self._get_pool()
        rows = await pool.fetch(
            "select completeness_score from sessions where source_id = $1::uuid",
            source_id,
        )
        quality = calculate_source_quality([dict(row) for row in rows])
        return {
            "source_id": source["id"],
            "score": quality.score,
            "tier": quality.tier,
            "session_count": len(rows),
            "stored_score": source["data_quality_score"],
            "stored_tier": source["quality_tier"],
        }

    async def list_alerts(
        self,
        *,
        limit: int,
        offset: int,
        source_id: str | None = None,
        open_only: bool = True,
    ) -> list[dict[str, Any]]:
        pool = await self._get_pool()
        conditions: list[str] = []
        params: list[Any] = []

        def bind(value: Any) -> str:
            params.append(value)
            return f"${len(params)}"

        if open_only:
            conditions.append("a.acknowledged_at is null")
        normalized_source_id = self._coerce_text(source_id)
        if normalized_source_id:
            conditions.append(f"a.source_id = {bind(normalized_source_id)}::uuid")

        where_sql = " and ".join(conditions) if conditions else "true"
        limit_token = bind(max(1, min(limit, 1000)))
        offset_token = bind(max(0, offset))
        try:
            rows = await pool.fetch(
                f"""
                select
                  a.id::text as id,
                  a.source_id::text as source_id,
                  a.alert_type,
                  a.severity,
                  a.message,
                  a.details,
                  a.created_at,
                  a.acknowledged_at
                from data_quality_alerts a
                where {where_sql}
                order by a.created_at desc, a.id asc
                limit {limit_token}
                offset {offset_token}
                """,
                *params,
            )
        except (pg_exc.InvalidTextRepresentationError, asyncpg.DataError) as exc:
            raise RepositoryValidationError("source_id must be a valid UUID") from exc
        return [self._alert_row_to_dict(row) for row in rows]

    async def acknowledge_alert(self, alert_id: str) -> dict[str, Any]:
        pool = await self._get_pool()
        try:
            row = await pool.fetchrow(
                """
                update data_quality_alerts
                set acknowledged_at = coalesce(acknowledged_at, now())
                where id = $1::uuid
                returning
                  id::text as id,
                  source_id::text as source_id,
                  alert_type,
                  severity,
                  message,
                  details,
                  created_at,
                  acknowledged_at
                """,
                alert_id,
            )
        except (pg_exc.InvalidTextRepresentationError, asyncpg.DataError) as exc:
            raise RepositoryNotFoundError("alert not found") from exc
        if row is None:
            raise RepositoryNotFoundError("alert not found")
        return self._alert_row_to_dict(row)

    async def run_within_source_dedupe(self, options: BatchOptions) -> BatchReport:
        async def handle(conn: asyncpg.Connection, source_id: str, report: BatchReport) -> None:
            rows = await conn.fetch(
                f"select {_SESSION_COLUMNS} from sessions s where s.source_id = $1::uuid for update",
                source_id,
            )
            plans = plan_within_source_merges([snapshot_from_row(self._session_row_to_dict(row)) for row in rows])
            removed = [session_id for plan in plans for session_id in plan.remove_ids]
            report.add_detail("duplicate_groups", len(plans))
            report.add_detail("sessions_to_remove", len(removed))
            if plans:
                report.details.setdefault("plans", []).extend(
                    {"dedupe_key": plan.dedupe_key, "keep_id": plan.keep_id, "remove_ids": plan.remove_ids}
                    for plan in plans
                )
            if options.dry_run or not removed:
                return
            deleted = await conn.execute("delete from sessions where id = any($1::uuid[])", removed)
            report.add_detail("sessions_removed", _affected_rows(deleted))

        return await self._run_keyed_pass(
            task="within-source-dedupe",
            options=options,
            keys_sql="""
                select id::text
                from scrape_sources
                where ($1::uuid is null or id > $1::uuid)
                order by id asc
                limit $2
            """,
            cursor_cast="uuid",
            handler=handle,
        )

    async def run_cross_source_dedupe(self, options: BatchOptions) -> BatchReport:
        threshold = self.cross_source_similarity_threshold

        async def handle(conn: asyncpg.Connection, city_id: str, report: BatchReport) -> None:
            rows = await conn.fetch(
                f"""
                select {_SESSION_COLUMNS}
                from sessions s
                where s.city_id = $1 and s.start_date is not null
                order by s.start_date asc, s.id asc
                """,
                city_id,
            )
            matches = find_cross_source_matches(
                [snapshot_from_row(self._session_row_to_dict(row)) for row in rows],
                threshold=threshold,
            )
            report.add_detail("matches_found", len(matches))
            if options.dry_run:
                if matches:
                    report.details.setdefault("matches", []).extend(asdict(match) for match in matches)
                return
            for match in matches:
                flag_id = await conn.fetchval(
                    """
                    insert into session_duplicate_flags (
                      session_id,
                      duplicate_session_id,
                      similarity,
                      components,
                      risk_flags
                    )
                    values ($1::uuid, $2::uuid, $3, $4::jsonb, $5::text[])
                    on conflict (session_id, duplicate_session_id) do nothing
                    returning id::text
                    """,
                    match.session_id,
                    match.duplicate_session_id,
                    match.similarity,
                    json.dumps(match.components),
                    match.risk_flags,
                )
                if flag_id is not None:
                    report.add_detail("flags_created")

        return await self._run_keyed_pass(
            task="cross-source-dedupe",
            options=options,
            keys_sql="""
                select distinct city_id
                from sessions
                where city_id is not null and ($1::text is null or city_id > $1::text)
                order by city_id asc
                limit $2
            """,
            cursor_cast="text",
            handler=handle,
        )

    async def run_source_quality(self, options: BatchOptions) -> BatchReport:
        async def handle(conn: asyncpg.Connection, source_id: str, report: BatchReport) -> None:
            rows = await conn.fetch(
                "select completeness_score from sessions where source_id = $1::uuid",
                source_id,
            )
            quality = calculate_source_quality([dict(row) for row in rows])
            report.add_detail(f"tier_{quality.tier}")
            if options.dry_run:
                return
            await conn.execute(
                """
                update scrape_sources
                set data_quality_score = $2, quality_tier = $3, updated_at = now()
                where id = $1::uuid
                """,
                source_id,
                quality.score,
                quality.tier,
            )
            report.add_detail("sources_updated")

        return await self._run_keyed_pass(
            task="source-quality",
            options=options,
            keys_sql="""
                select id::text
                from scrape_sources
                where ($1::uuid is null or id > $1::uuid)
                order by id asc
                limit $2
            """,
            cursor_cast="uuid",
            handler=handle,
        )

    async def run_data_quality(self, options: BatchOptions) -> BatchReport:
        thresholds = self.monitor_thresholds
        lookback = timedelta(days=self.zero_price_lookback_days)

        async def handle(conn: asyncpg.Connection, source_id: str, report: BatchReport) -> None:
            now = datetime.now(timezone.utc)
            source_row = await conn.fetchrow(
                f"select {_SOURCE_COLUMNS} from scrape_sources where id = $1::uuid",
                source_id,
            )
            if source_row is None:
                raise RepositoryNotFoundError("source not found")
            price_row = await conn.fetchrow(
                """
                select
                  count(*)::int as total_count,
                  count(*) filter (where status = 'active' and price_in_cents = 0)::int as zero_price_count
                from sessions
                where source_id = $1::uuid and last_scraped_at >= $2
                """,
                source_id,
                now - lookback,
            )
            issues = evaluate_source(
                source_health_from_row(dict(source_row)),
                ZeroPriceStats(
                    total_count=int(price_row["total_count"] or 0),
                    zero_price_count=int(price_row["zero_price_count"] or 0),
                ),
                thresholds=thresholds,
                now=now,
            )
            report.add_detail("issues_found", len(issues))
            for issue in issues:
                report.add_detail(issue.alert_type)
            if options.dry_run:
                return
            for issue in issues:
                alert_id = await conn.fetchval(
                    """
                    insert into data_quality_alerts (source_id, alert_type, severity, message, details)
                    values ($1::uuid, $2, $3, $4, $5::jsonb)
                    on conflict (source_id, alert_type) where acknowledged_at is null do nothing
                    returning id::text
                    """,
                    issue.source_id,
                    issue.alert_type,
                    issue.severity,
                    issue.message,
                    json.dumps(issue.details),
                )
                if alert_id is not None:
                    report.add_detail("alerts_created")

        return await self._run_keyed_pass(
            task="data-quality",
            options=options,
            keys_sql="""
                select id::text
                from scrape_sources
                where is_active = true and ($1::uuid is null or id > $1::uuid)
                order by id asc
                limit $2
            """,
            cursor_cast="uuid",
            handler=handle,
        )

    async def _run_keyed_pass(
        self,
        *,
        task: str,
        options: BatchOptions,
        keys_sql: str,
        cursor_cast: str,
        handler: Callable[[asyncpg.Connection, str, BatchReport], Awaitable[None]],
    ) -> BatchReport:
        bounded = options.bounded(maximum=self.maintenance_max_batch_size)
        pool = await self._get_pool()
        with tracer.start_as_current_span("maintenance.pass") as span:
            span.set_attribute("maintenance.task", task)
            span.set_attribute("maintenance.dry_run", bounded.dry_run)
            span.set_attribute("maintenance.resumed", bounded.cursor is not None)
            try:
                keys = [row[0] for row in await pool.fetch(keys_sql, bounded.cursor, bounded.batch_size + 1)]
            except (pg_exc.InvalidTextRepresentationError, asyncpg.DataError) as exc:
                raise RepositoryValidationError(f"cursor must be a valid {cursor_cast} key") from exc

            page, next_cursor, is_done = page_keys(keys, bounded.batch_size)
            report = BatchReport(task=task, dry_run=bounded.dry_run, next_cursor=next_cursor, is_done=is_done)

            async def handle_key(key: str) -> None:
                async with pool.acquire() as conn:
                    async with conn.transaction():
                        await handler(conn, key, report)

            await process_keys(page, handle_key, report=report, isolated_errors=BATCH_ISOLATED_ERRORS)
            span.set_attribute("maintenance.processed", report.processed)
            span.set_attribute("maintenance.failed", report.failed)
            span.set_attribute("maintenance.done", report.is_done)
        return report

    async def _get_pool(self) -> asyncpg.Pool:
        if not self.database_url:
            raise RepositoryUnavailableError("CS_DATABASE_URL is required")

        if self._pool is not None:
            return self._pool

        try:
            self._pool = await asyncpg.create_pool(
                dsn=self.database_url,
                min_size=self.min_pool_size,
                max_size=self.max_pool_size,
                command_timeout=15,
            )
            return self._pool
        except Exception as exc:  # pragma: no cover - depends on environment
            raise RepositoryUnavailableError("database unavailable") from exc

    @staticmethod
    def _validation_to_dict(validation: ValidationResult) -> dict[str, Any]:
        payload = validation.to_dict()
        payload.pop("normalized_data", None)
        return payload

    @classmethod
    def _session_row_to_dict(cls, row: asyncpg.Record) -> dict[str, Any]:
        payload = dict(row)
        payload["start_date"] = cls._coerce_iso_date(payload.get("start_date"))
        payload["end_date"] = cls._coerce_iso_date(payload.get("end_date"))
        payload["categories"] = list(payload.get("categories") or [])
        payload["image_urls"] = list(payload.get("image_urls") or [])
        payload["missing_fields"] = list(payload.get("missing_fields") or [])
        payload["validation_errors"] = cls._coerce_json_list(payload.get("validation_errors"))
        payload["is_public"] = is_publicly_visible(payload.get("status") or "")
        return payload

    @staticmethod
    def _source_row_to_dict(row: asyncpg.Record) -> dict[str, Any]:
        payload = dict(row)
        payload["success_rate"] = float(payload.get("success_rate") or 0.0)
        return payload

    @classmethod
    def _alert_row_to_dict(cls, row: asyncpg.Record) -> dict[str, Any]:
        payload = dict(row)
        payload["details"] = cls._coerce_json_dict(payload.get("details"))
        return payload

    @staticmethod
    def _coerce_iso_date(value: Any) -> str | None:
        if isinstance(value, date):
            return value.isoformat()
        if isinstance(value, str):
            return value
        return None

    @staticmethod
    def _coerce_text(value: Any) -> str | None:
        if value is None:
            return None
        if isinstance(value, str):
            stripped = value.strip()
            return stripped or None
        return str(value)

    @staticmethod
    def _coerce_json_list(value: Any) -> list[dict[str, Any]]:
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except json.JSONDecodeError:
                return []
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, dict)]

    @staticmethod
    def _coerce_json_dict(value: Any) -> dict[str, Any]:
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except json.JSONDecodeError:
                return {}
        if isinstance(value, dict):
            return value
        return {}


def _affected_rows(status: str) -> int:
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (ValueError, IndexError):
        return 0


@lru_cache
def get_repository() -> PostgresRepository:
    settings = get_settings()
    return PostgresRepository(
        database_url=settings.database_url,
        min_pool_size=settings.database_pool_min_size,
        max_pool_size=settings.database_pool_max_size,
        monitor_thresholds=MonitorThresholds(
            low_quality_threshold=settings.low_quality_threshold,
            stale_scrape_days=settings.stale_scrape_days,
            zero_price_ratio_threshold=settings.zero_price_ratio_threshold,
        ),
        zero_price_lookback_days=settings.zero_price_lookback_days,
        cross_source_similarity_threshold=settings.cross_source_similarity_threshold,
        maintenance_max_batch_size=settings.maintenance_max_batch_size,
        needs_regeneration_after_failures=settings.needs_regeneration_after_failures,
    )

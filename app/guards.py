"""
Storage-layer guard against overlapping reservations.

The availability pre-check and the in-transaction re-check both read before
they write, so two concurrent admissions can still race. The guard installed
here makes the database itself refuse a second non-cancelled reservation whose
[start, end) window intersects an existing one for the same resource; the
rejection surfaces as tortoise's IntegrityError.
"""

from loguru import logger
from tortoise import connections

GUARD_NAME = "reservations_no_overlap"

POSTGRES_GUARD = f"""
CREATE EXTENSION IF NOT EXISTS btree_gist;
DO $$
BEGIN
    IF NOT EXISTS (SELECT 1 FROM pg_constraint WHERE conname = '{GUARD_NAME}') THEN
        ALTER TABLE reservations ADD CONSTRAINT {GUARD_NAME}
            EXCLUDE USING gist (
                resource_id WITH =,
                tstzrange(start_datetime, end_datetime, '[)') WITH &&
            )
            WHERE (status <> 'cancelled');
    END IF;
END $$;
"""

SQLITE_GUARD = f"""
CREATE TRIGGER IF NOT EXISTS {GUARD_NAME}
BEFORE INSERT ON reservations
WHEN NEW.status <> 'cancelled' AND EXISTS (
    SELECT 1 FROM reservations
    WHERE resource_id = NEW.resource_id
      AND status <> 'cancelled'
      AND start_datetime < NEW.end_datetime
      AND end_datetime > NEW.start_datetime
)
BEGIN
    SELECT RAISE(ABORT, 'reservation overlaps an active reservation');
END;
"""

_GUARDS = {
    "postgres": POSTGRES_GUARD,
    "sqlite": SQLITE_GUARD,
}


async def install_overlap_guard(connection_name: str = "default") -> bool:
    """Install the guard for the connection's dialect. Returns False if unsupported."""
    conn = connections.get(connection_name)
    dialect = conn.capabilities.dialect
    script = _GUARDS.get(dialect)
    if script is None:
        logger.warning(
            "No overlap guard for dialect {}, relying on transactional re-check",
            dialect,
        )
        return False
    await conn.execute_script(script)
    logger.info("Overlap guard {} installed ({})", GUARD_NAME, dialect)
    return True

import logging
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError
from sqlalchemy import create_engine, delete, inspect, select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DataError, IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from wallboard.models import Base, Wall
from wallboard.schemas import CreateResult, WallCreate, WallCreated, WallDraft, WallRecord, WallRejected

logger = logging.getLogger(__name__)

DRAFT_TEXT_FIELDS = ("created_by", "title", "description")


class StorageUnavailable(Exception):
    """The database could not be reached."""


class WallNotFound(Exception):
    """No wall exists with the requested id."""

    def __init__(self, wall_id: int):
        super().__init__(f"Wall {wall_id} not found")
        self.wall_id = wall_id


def build_engine(database_url: str) -> Engine:
    """
    Create the SQLAlchemy engine for a database URL.

    check_same_thread=False is required for SQLite because FastAPI serves
    sync routes from a thread pool.
    """
    connect_args = {}
    if database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(database_url, connect_args=connect_args, echo=False)


def validation_errors(exc: ValidationError) -> Dict[str, str]:
    """Flatten a pydantic ValidationError into a field -> message mapping."""
    errors = {}
    for err in exc.errors():
        field = ".".join(str(part) for part in err["loc"]) or "general"
        errors.setdefault(field, err["msg"])
    return errors


def draft_from(attributes: Mapping[str, Any]) -> WallDraft:
    """Keep the user's input, unvalidated, so the form can be shown again."""
    values = {
        name: (None if attributes.get(name) is None else str(attributes[name]))
        for name in DRAFT_TEXT_FIELDS
    }
    likes = attributes.get("likes")
    values["likes"] = likes if isinstance(likes, (int, str)) else None
    return WallDraft(**values)


class WallStore:
    """
    Durable storage for walls.

    Owns the `walls` table. Every operation runs in its own session and
    commits at most once, so inserts and deletes are atomic per wall.
    Records are returned as detached `WallRecord` values.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self.SessionLocal = sessionmaker(autoflush=False, expire_on_commit=False, bind=engine)

    @classmethod
    def from_url(cls, database_url: str) -> "WallStore":
        return cls(build_engine(database_url))

    def init_schema(self) -> None:
        """
        Create the walls table if it does not exist yet.
        Called during application startup.
        """
        logger.debug(f"Initializing database with URL: {self.engine.url!r}")
        try:
            Base.metadata.create_all(bind=self.engine)
        except OperationalError as e:
            logger.error(f"Failed to initialize database: {e}")
            raise StorageUnavailable(str(e)) from e
        logger.info("Database initialized successfully")

    def check_health(self) -> bool:
        """
        Check if the database is reachable and the walls table exists.

        Returns:
            True if DB is healthy and schema exists, False otherwise.
        """
        logger.debug("Checking database health...")
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            if not inspect(self.engine).has_table(Wall.__tablename__):
                logger.error("Database schema not applied: 'walls' table not found")
                return False
        except SQLAlchemyError as e:
            logger.error(f"Database health check failed: {e}")
            return False
        logger.debug("Database health check passed")
        return True

    # =========================================================================
    # Wall Repository Functions
    # =========================================================================

    def list_all(self) -> List[WallRecord]:
        """Return every wall, oldest id first."""
        try:
            with self.SessionLocal() as db:
                walls = db.scalars(select(Wall).order_by(Wall.id.asc())).all()
                records = [WallRecord.model_validate(wall) for wall in walls]
        except OperationalError as e:
            logger.error(f"Failed to list walls: {e}")
            raise StorageUnavailable(str(e)) from e
        logger.info(f"Retrieved {len(records)} walls")
        return records

    def get_by_id(self, wall_id: int) -> Optional[WallRecord]:
        """
        Look a wall up by primary key.

        Returns:
            The wall, or None if there is no wall with that id
        """
        logger.info(f"Looking up wall by ID: {wall_id}")
        try:
            with self.SessionLocal() as db:
                wall = db.get(Wall, wall_id)
                record = WallRecord.model_validate(wall) if wall is not None else None
        except OperationalError as e:
            logger.error(f"Failed to look up wall {wall_id}: {e}")
            raise StorageUnavailable(str(e)) from e
        logger.info(f"Wall lookup result: {'found' if record else 'not found'}")
        return record

    def create(self, attributes: Mapping[str, Any]) -> CreateResult:
        """
        Validate and insert a new wall.

        Args:
            attributes: created_by, title, description, likes and the
                server-stamped created_at. Other keys are ignored.

        Returns:
            WallCreated with the stored wall (including its new id), or
            WallRejected with the unsaved draft and the reasons.
        """
        try:
            data = WallCreate.model_validate(dict(attributes))
        except ValidationError as e:
            errors = validation_errors(e)
            logger.info(f"Wall rejected: {sorted(errors)}")
            return WallRejected(draft=draft_from(attributes).model_copy(update={"errors": errors}), errors=errors)

        logger.info(f"Creating wall: title={data.title!r}, created_by={data.created_by!r}")
        try:
            with self.SessionLocal() as db:
                wall = Wall(**data.model_dump())
                db.add(wall)
                try:
                    db.commit()
                except (IntegrityError, DataError) as e:
                    db.rollback()
                    logger.warning(f"Wall rejected by the database: {e}")
                    errors = {"general": "The wall could not be saved."}
                    return WallRejected(draft=draft_from(attributes).model_copy(update={"errors": errors}), errors=errors)
                record = WallRecord.model_validate(wall)
        except OperationalError as e:
            logger.error(f"Failed to create wall: {e}")
            raise StorageUnavailable(str(e)) from e

        logger.info(f"Wall created successfully: {record.id}")
        return WallCreated(wall=record)

    def destroy(self, wall_id: int) -> bool:
        """
        Delete a wall in a single statement.

        Returns:
            True if a wall was deleted, False if none had that id
        """
        logger.info(f"Deleting wall: {wall_id}")
        try:
            with self.SessionLocal() as db:
                result = db.execute(delete(Wall).where(Wall.id == wall_id))
                db.commit()
        except OperationalError as e:
            logger.error(f"Failed to delete wall {wall_id}: {e}")
            raise StorageUnavailable(str(e)) from e
        deleted = result.rowcount == 1
        logger.info(f"Wall delete result: {'deleted' if deleted else 'not found'}")
        return deleted

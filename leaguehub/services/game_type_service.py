"""
Game type service.

Each league defines its own game types. The category (head-to-head,
free-for-all, high-score) fixes the shape of the config, which is validated
on every write and stored as JSON. Archiving hides a game type from active
listings and frees a slot in the league's quota; deleting is permanent.
"""

import json
import logging
from typing import Dict, List, Optional

from sqlalchemy import select, delete, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from leaguehub.database.db import atomic
from leaguehub.database.models import GameCategory, GameType
from leaguehub.models.schemas import GAME_CONFIG_SCHEMAS, GameTypeCreate, GameTypeUpdate
from leaguehub.services import limits_service, member_service
from leaguehub.services.permissions import LeagueAction
from leaguehub.services.result import (
    VALIDATION_FAILED,
    ServiceError,
    parse_input,
    service_operation,
)

logger = logging.getLogger(__name__)

GAME_TYPE_NOT_FOUND = "Game type not found"
DUPLICATE_NAME = "A game type with this name already exists"


def game_type_to_dict(game_type: GameType) -> Dict:
    return {
        "id": game_type.id,
        "league_id": game_type.league_id,
        "name": game_type.name,
        "description": game_type.description,
        "logo": game_type.logo,
        "category": game_type.category,
        "config": json.loads(game_type.config) if game_type.config else {},
        "is_archived": game_type.is_archived,
        "created_at": game_type.created_at,
        "updated_at": game_type.updated_at,
    }


def validate_config(category: GameCategory, config) -> Dict:
    """Validate a config against its category's schema; errors are keyed config.<field>."""
    schema = GAME_CONFIG_SCHEMAS[GameCategory(category)]
    try:
        parsed = parse_input(schema, config)
    except ServiceError as e:
        raise ServiceError(
            VALIDATION_FAILED,
            {f"config.{field}": message for field, message in (e.field_errors or {}).items()},
        )
    return parsed.model_dump()


async def _name_exists(
    session: AsyncSession, league_id: str, name: str, exclude_id: Optional[str] = None
) -> bool:
    stmt = select(GameType.id).where(
        GameType.league_id == league_id, func.lower(GameType.name) == name.lower()
    )
    if exclude_id:
        stmt = stmt.where(GameType.id != exclude_id)
    result = await session.execute(stmt.limit(1))
    return result.scalar_one_or_none() is not None


async def _require_game_type(session: AsyncSession, game_type_id: str) -> GameType:
    game_type = await session.get(GameType, game_type_id) if game_type_id else None
    if not game_type:
        raise ServiceError(GAME_TYPE_NOT_FOUND)
    return game_type


async def _require_manageable(
    session: AsyncSession, game_type_id: str, user_id: str, verb: str
) -> GameType:
    game_type = await _require_game_type(session, game_type_id)
    await member_service.require_permission(
        session, user_id, game_type.league_id, LeagueAction.CREATE_GAME_TYPES,
        f"You do not have permission to {verb} game types",
    )
    return game_type


@service_operation
async def create_game_type(session: AsyncSession, league_id: str, payload, user_id: str) -> Dict:
    """Create a game type after permission, schema, name and quota checks."""
    await member_service.require_permission(
        session, user_id, league_id, LeagueAction.CREATE_GAME_TYPES,
        "You do not have permission to create game types",
    )
    data = parse_input(GameTypeCreate, payload)
    config = validate_config(data.category, data.config)

    if await _name_exists(session, league_id, data.name):
        raise ServiceError(VALIDATION_FAILED, {"name": DUPLICATE_NAME})

    await limits_service.ensure_league_can_add_game_type(session, league_id)

    game_type = GameType(
        league_id=league_id,
        name=data.name,
        description=data.description or None,
        logo=data.logo or None,
        category=data.category.value,
        config=json.dumps(config),
    )
    try:
        async with atomic(session):
            session.add(game_type)
    except IntegrityError:
        logger.warning("Concurrent duplicate game type name %r in league %s", data.name, league_id)
        raise ServiceError(VALIDATION_FAILED, {"name": DUPLICATE_NAME})

    logger.info(
        "User %s created %s game type %s in league %s",
        user_id, data.category.value, game_type.id, league_id,
    )
    return game_type_to_dict(game_type)


@service_operation
async def get_game_type(session: AsyncSession, game_type_id: str, user_id: str) -> Dict:
    game_type = await _require_game_type(session, game_type_id)
    await member_service.require_membership(session, user_id, game_type.league_id)
    return game_type_to_dict(game_type)


@service_operation
async def get_league_game_types(
    session: AsyncSession, league_id: str, user_id: str, include_archived: bool = False
) -> List[Dict]:
    await member_service.require_membership(session, user_id, league_id)
    stmt = select(GameType).where(GameType.league_id == league_id).order_by(GameType.name)
    if not include_archived:
        stmt = stmt.where(GameType.is_archived.is_(False))
    result = await session.execute(stmt)
    return [game_type_to_dict(g) for g in result.scalars().all()]


@service_operation
async def update_game_type(session: AsyncSession, game_type_id: str, payload, user_id: str) -> Dict:
    """
    Edit name, description, logo or config.

    The category is fixed at creation; a different category is rejected and a
    new config is validated against the stored one.
    """
    game_type = await _require_manageable(session, game_type_id, user_id, "edit")
    data = parse_input(GameTypeUpdate, payload)
    changes = data.model_dump(exclude_unset=True)

    if changes.get("category") is not None and GameCategory(changes["category"]).value != game_type.category:
        raise ServiceError(
            VALIDATION_FAILED, {"category": "Category cannot be changed after creation"}
        )

    new_config = None
    if changes.get("config") is not None:
        new_config = validate_config(game_type.category, changes["config"])

    if changes.get("name") and await _name_exists(
        session, game_type.league_id, changes["name"], exclude_id=game_type.id
    ):
        raise ServiceError(VALIDATION_FAILED, {"name": DUPLICATE_NAME})

    try:
        async with atomic(session):
            if changes.get("name"):
                game_type.name = changes["name"]
            if "description" in changes:
                game_type.description = changes["description"] or None
            if "logo" in changes:
                game_type.logo = changes["logo"] or None
            if new_config is not None:
                game_type.config = json.dumps(new_config)
    except IntegrityError:
        logger.warning("Concurrent duplicate game type name on update of %s", game_type_id)
        raise ServiceError(VALIDATION_FAILED, {"name": DUPLICATE_NAME})

    logger.info("User %s updated game type %s", user_id, game_type_id)
    return game_type_to_dict(game_type)


@service_operation
async def archive_game_type(session: AsyncSession, game_type_id: str, user_id: str) -> Dict:
    game_type = await _require_manageable(session, game_type_id, user_id, "archive")
    if game_type.is_archived:
        raise ServiceError("Game type is already archived")
    game_type.is_archived = True
    await session.flush()
    logger.info("User %s archived game type %s", user_id, game_type_id)
    return {"archived": True}


@service_operation
async def unarchive_game_type(session: AsyncSession, game_type_id: str, user_id: str) -> Dict:
    """Restoring counts against the quota again, so the limit is re-checked."""
    game_type = await _require_manageable(session, game_type_id, user_id, "unarchive")
    if not game_type.is_archived:
        raise ServiceError("Game type is not archived")
    await limits_service.ensure_league_can_add_game_type(session, game_type.league_id)
    game_type.is_archived = False
    await session.flush()
    logger.info("User %s unarchived game type %s", user_id, game_type_id)
    return {"unarchived": True}


@service_operation
async def delete_game_type(session: AsyncSession, game_type_id: str, user_id: str) -> Dict:
    await _require_manageable(session, game_type_id, user_id, "delete")
    result = await session.execute(delete(GameType).where(GameType.id == game_type_id))
    if result.rowcount == 0:
        raise ServiceError("Failed to delete game type")
    logger.info("User %s deleted game type %s", user_id, game_type_id)
    return {"deleted": True}

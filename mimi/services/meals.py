"""Meal log store — persists one structured nutrition estimate per analysed photo."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import bindparam, text
from sqlalchemy.ext.asyncio import AsyncSession

from mimi.database import UTCDateTime, as_utc
from mimi.services.completion import MealAnalysis

logger = logging.getLogger(__name__)

SOURCE_LINE_IMAGE = "line_image"

_INSERT_MEAL = text("""
    INSERT INTO meal_logs
        (user_id, eaten_at, meal_type, food_name, description,
         carb_g, sugar_g, protein_g, fat_g,
         veggies_servings, fruits_servings, calories_kcal,
         source, raw_json, created_at, updated_at)
    VALUES
        (:user_id, :eaten_at, :meal_type, :food_name, :description,
         :carb_g, :sugar_g, :protein_g, :fat_g,
         :veggies_servings, :fruits_servings, :calories_kcal,
         :source, :raw_json, :now, :now)
""").bindparams(
    bindparam("eaten_at", type_=UTCDateTime),
    bindparam("now", type_=UTCDateTime),
)


async def save_meal_log(
    db: AsyncSession,
    user_id: int,
    analysis: MealAnalysis,
    eaten_at: Optional[datetime] = None,
    source: str = SOURCE_LINE_IMAGE,
) -> None:
    """Insert one meal_logs row; updated_at equals created_at."""
    now = datetime.now(timezone.utc)
    await db.execute(
        _INSERT_MEAL,
        {
            "user_id": user_id,
            "eaten_at": as_utc(eaten_at) or now,
            "meal_type": analysis.meal_type,
            "food_name": analysis.food_name,
            "description": analysis.description,
            "carb_g": analysis.carb_g,
            "sugar_g": analysis.sugar_g,
            "protein_g": analysis.protein_g,
            "fat_g": analysis.fat_g,
            "veggies_servings": analysis.veggies_servings,
            "fruits_servings": analysis.fruits_servings,
            "calories_kcal": analysis.calories_kcal,
            "source": source,
            "raw_json": json.dumps(analysis.raw_json, ensure_ascii=False),
            "now": now,
        },
    )
    await db.commit()
    logger.info("Saved meal log for user %s (%s)", user_id, analysis.food_name or "unknown")

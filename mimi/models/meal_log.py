"""MealLog ORM model — nutrition estimate derived from a meal photo."""

from sqlalchemy import Column, Integer, Text, Double, JSON, TIMESTAMP, ForeignKey, func

from mimi.database import Base


class MealLog(Base):
    """
    Structured result of one analysed image.
    Every numeric column is either a finite number or NULL when the model
    could not estimate it. raw_json keeps the parsed model output for audit.
    """

    __tablename__ = "meal_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    eaten_at = Column(TIMESTAMP(timezone=True), nullable=False)
    meal_type = Column(Text, nullable=True)
    food_name = Column(Text, nullable=True)
    description = Column(Text, nullable=True)

    carb_g = Column(Double, nullable=True)
    sugar_g = Column(Double, nullable=True)
    protein_g = Column(Double, nullable=True)
    fat_g = Column(Double, nullable=True)
    veggies_servings = Column(Double, nullable=True)
    fruits_servings = Column(Double, nullable=True)
    calories_kcal = Column(Double, nullable=True)

    source = Column(Text, nullable=False, server_default="line_image")
    raw_json = Column(JSON, nullable=True)

    created_at = Column(
        TIMESTAMP(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at = Column(
        TIMESTAMP(timezone=True), nullable=False, server_default=func.now()
    )

from datetime import datetime, timezone

from nutria import db


def utc_now() -> datetime:
    # Stored as naive UTC.
    return datetime.now(timezone.utc).replace(tzinfo=None)


class User(db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), unique=True, nullable=True, index=True)
    password_hash = db.Column(db.String(255), nullable=True)
    first_name = db.Column(db.String(120), nullable=True)
    last_name = db.Column(db.String(120), nullable=True)
    profile_image_url = db.Column(db.String(500), nullable=True)
    google_id = db.Column(db.String(255), unique=True, nullable=True)
    auth_provider = db.Column(db.String(20), nullable=False, default="local")

    weight_kg = db.Column(db.Float, nullable=True)
    height_cm = db.Column(db.Float, nullable=True)
    age = db.Column(db.Integer, nullable=True)
    biological_sex = db.Column(db.String(16), nullable=True)  # male/female
    goal = db.Column(db.String(20), nullable=True)  # lose/maintain/gain
    activity_level = db.Column(db.String(20), nullable=True)
    time_zone = db.Column(db.String(64), nullable=True)

    daily_calories = db.Column(db.Integer, nullable=False, default=2000)
    daily_protein = db.Column(db.Integer, nullable=False, default=150)
    daily_carbs = db.Column(db.Integer, nullable=False, default=225)
    daily_fat = db.Column(db.Integer, nullable=False, default=67)

    notifications_enabled = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    foods = db.relationship("Food", backref="owner", lazy=True)
    meals = db.relationship("Meal", backref="user", lazy=True)
    recipes = db.relationship("Recipe", backref="user", lazy=True)
    plans = db.relationship("Plan", backref="user", lazy=True)

    @property
    def is_profile_complete(self) -> bool:
        return all(
            value not in (None, "")
            for value in [self.weight_kg, self.height_cm, self.age, self.goal, self.activity_level]
        )

    def full_name(self) -> str:
        return " ".join(part for part in [self.first_name, self.last_name] if part) or (self.email or "")


class Food(db.Model):
    __tablename__ = "foods"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    usda_fdc_id = db.Column(db.Integer, nullable=True, index=True)

    name = db.Column(db.String(255), index=True, nullable=False)
    brand = db.Column(db.String(255), nullable=True)
    category = db.Column(db.String(120), nullable=True)

    # nutrition per 100g; sodium in grams like the other fields
    calories_per_100g = db.Column(db.Float, nullable=False, default=0)
    protein_per_100g = db.Column(db.Float, nullable=False, default=0)
    carbs_per_100g = db.Column(db.Float, nullable=False, default=0)
    fat_per_100g = db.Column(db.Float, nullable=False, default=0)
    fiber_per_100g = db.Column(db.Float, nullable=True)
    sugar_per_100g = db.Column(db.Float, nullable=True)
    sodium_per_100g = db.Column(db.Float, nullable=True)

    is_custom = db.Column(db.Boolean, nullable=False, default=True)
    source = db.Column(db.String(20), nullable=False, default="custom")  # custom/usda/fallback
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    def display_name(self):
        if self.brand:
            return f"{self.name} ({self.brand})"
        return self.name


class MealType(db.Model):
    __tablename__ = "meal_types"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    name = db.Column(db.String(120), nullable=False)
    icon = db.Column(db.String(40), nullable=True)
    is_default = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    __table_args__ = (db.UniqueConstraint("user_id", "name", name="uq_meal_types_user_name"),)


class Meal(db.Model):
    __tablename__ = "meals"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    meal_type_id = db.Column(db.Integer, db.ForeignKey("meal_types.id"), nullable=False)
    name = db.Column(db.String(255), nullable=True)

    date = db.Column(db.Date, nullable=False, index=True)  # nutritional day of created_at
    created_at = db.Column(db.DateTime, default=utc_now, index=True, nullable=False)

    total_calories = db.Column(db.Integer, nullable=False, default=0)
    total_protein = db.Column(db.Float, nullable=False, default=0)
    total_carbs = db.Column(db.Float, nullable=False, default=0)
    total_fat = db.Column(db.Float, nullable=False, default=0)

    meal_type = db.relationship("MealType", lazy=True)
    foods = db.relationship(
        "MealFood",
        backref="meal",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="MealFood.id",
    )


class MealFood(db.Model):
    __tablename__ = "meal_foods"

    id = db.Column(db.Integer, primary_key=True)
    meal_id = db.Column(db.Integer, db.ForeignKey("meals.id"), nullable=False, index=True)
    food_id = db.Column(db.Integer, db.ForeignKey("foods.id"), nullable=False, index=True)
    quantity = db.Column(db.Float, nullable=False)
    unit = db.Column(db.String(20), nullable=False, default="g")

    # snapshot taken from the food when the line is written
    calories = db.Column(db.Integer, nullable=False, default=0)
    protein = db.Column(db.Float, nullable=False, default=0)
    carbs = db.Column(db.Float, nullable=False, default=0)
    fat = db.Column(db.Float, nullable=False, default=0)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)

    food = db.relationship("Food", lazy=True)


class Recipe(db.Model):
    __tablename__ = "recipes"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    instructions = db.Column(db.Text, nullable=True)
    servings = db.Column(db.Integer, nullable=False, default=1)

    total_calories = db.Column(db.Integer, nullable=False, default=0)
    total_protein = db.Column(db.Float, nullable=False, default=0)
    total_carbs = db.Column(db.Float, nullable=False, default=0)
    total_fat = db.Column(db.Float, nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    ingredients = db.relationship(
        "RecipeIngredient",
        backref="recipe",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="RecipeIngredient.id",
    )


class RecipeIngredient(db.Model):
    __tablename__ = "recipe_ingredients"

    id = db.Column(db.Integer, primary_key=True)
    recipe_id = db.Column(db.Integer, db.ForeignKey("recipes.id"), nullable=False, index=True)
    food_id = db.Column(db.Integer, db.ForeignKey("foods.id"), nullable=False, index=True)
    quantity = db.Column(db.Float, nullable=False)
    unit = db.Column(db.String(20), nullable=False, default="g")

    calories = db.Column(db.Integer, nullable=False, default=0)
    protein = db.Column(db.Float, nullable=False, default=0)
    carbs = db.Column(db.Float, nullable=False, default=0)
    fat = db.Column(db.Float, nullable=False, default=0)

    food = db.relationship("Food", lazy=True)


class DailyNutrition(db.Model):
    __tablename__ = "daily_nutrition"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    date = db.Column(db.Date, nullable=False, index=True)

    total_calories = db.Column(db.Integer, nullable=False, default=0)
    total_protein = db.Column(db.Float, nullable=False, default=0)
    total_carbs = db.Column(db.Float, nullable=False, default=0)
    total_fat = db.Column(db.Float, nullable=False, default=0)
    meal_count = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    __table_args__ = (db.UniqueConstraint("user_id", "date", name="uq_daily_nutrition_user_date"),)


class Plan(db.Model):
    __tablename__ = "plans"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    plan_type = db.Column(db.String(20), nullable=False, index=True)  # nutrition/workout
    title = db.Column(db.String(255), nullable=True)
    description = db.Column(db.Text, nullable=True)  # the user's request
    content = db.Column(db.JSON, nullable=True)
    source = db.Column(db.String(20), nullable=False, default="ai")  # ai/user
    model_name = db.Column(db.String(80), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, default=utc_now, nullable=False, index=True)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now, nullable=False)

    __table_args__ = (
        db.Index(
            "uq_plans_one_active_per_type",
            "user_id",
            "plan_type",
            unique=True,
            sqlite_where=db.text("is_active = 1"),
            postgresql_where=db.text("is_active = true"),
        ),
    )

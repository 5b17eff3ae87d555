"""Record storage behind a single interface.

Route handlers never query models directly; they go through the storage
object registered on the app by ``init_storage``. Two backends exist:

* ``DatabaseStorage`` (default) keeps records in the SQLAlchemy database.
* ``MemStorage`` keeps them in plain dicts for the life of the process,
  which is handy for demos and tests.

Both hand back model instances, so ``to_dict()`` works the same either way.
"""

import threading
from datetime import datetime
from typing import Protocol

from flask import Flask, current_app

from nutriscan import db
from nutriscan.models import FoodEntry, MealPlan, User, UserRecommendation, WaitlistUser, WorkoutPlan

STORAGE_EXTENSION_KEY = "nutriscan_storage"


class Storage(Protocol):
    def get_user(self, user_id: int) -> User | None: ...
    def get_user_by_username(self, username: str) -> User | None: ...
    def get_user_by_email(self, email: str) -> User | None: ...
    def create_user(self, **fields) -> User: ...
    def update_user(self, user_id: int, **fields) -> User | None: ...

    def get_food_entry(self, entry_id: int) -> FoodEntry | None: ...
    def get_food_entries_by_user_id(self, user_id: int) -> list[FoodEntry]: ...
    def create_food_entry(self, **fields) -> FoodEntry: ...
    def delete_food_entry(self, entry_id: int) -> bool: ...

    def get_meal_plan(self, plan_id: int) -> MealPlan | None: ...
    def get_meal_plans_by_user_id(self, user_id: int) -> list[MealPlan]: ...
    def create_meal_plan(self, **fields) -> MealPlan: ...
    def delete_meal_plan(self, plan_id: int) -> bool: ...

    def get_workout_plan(self, plan_id: int) -> WorkoutPlan | None: ...
    def get_workout_plans_by_user_id(self, user_id: int) -> list[WorkoutPlan]: ...
    def create_workout_plan(self, **fields) -> WorkoutPlan: ...
    def delete_workout_plan(self, plan_id: int) -> bool: ...

    def get_waitlist_entry(self, entry_id: int) -> WaitlistUser | None: ...
    def get_waitlist_entry_by_email(self, email: str) -> WaitlistUser | None: ...
    def create_waitlist_entry(self, **fields) -> WaitlistUser: ...

    def get_recommendations(self, user_id: int) -> UserRecommendation | None: ...
    def save_recommendations(self, user_id: int, data: dict) -> UserRecommendation: ...
    def delete_recommendations(self, user_id: int) -> bool: ...


class MemStorage:
    """Dict-backed storage with per-table incrementing ids."""

    _TABLES = ("users", "food_entries", "meal_plans", "workout_plans", "waitlist_users", "recommendations")

    def __init__(self):
        self._lock = threading.RLock()
        self._rows = {table: {} for table in self._TABLES}
        self._next_id = {table: 1 for table in self._TABLES}

    def _insert(self, table: str, model, fields: dict):
        with self._lock:
            record_id = self._next_id[table]
            self._next_id[table] += 1
            record = model(**fields)
            record.id = record_id
            if getattr(record, "created_at", None) is None:
                record.created_at = datetime.utcnow()
            self._rows[table][record_id] = record
            return record

    def _snapshot(self, table: str) -> list:
        # dicts keep insertion order, which matches id order here
        with self._lock:
            return list(self._rows[table].values())

    def _find(self, table: str, **criteria):
        for record in self._snapshot(table):
            if all(getattr(record, key) == value for key, value in criteria.items()):
                return record
        return None

    def _filter(self, table: str, **criteria):
        return [
            record
            for record in self._snapshot(table)
            if all(getattr(record, key) == value for key, value in criteria.items())
        ]

    def _delete(self, table: str, record_id: int) -> bool:
        with self._lock:
            return self._rows[table].pop(record_id, None) is not None

    def get_user(self, user_id):
        return self._rows["users"].get(user_id)

    def get_user_by_username(self, username):
        return self._find("users", username=username)

    def get_user_by_email(self, email):
        return self._find("users", email=email)

    def create_user(self, **fields):
        return self._insert("users", User, fields)

    def update_user(self, user_id, **fields):
        with self._lock:
            user = self._rows["users"].get(user_id)
            if user is None:
                return None
            for key, value in fields.items():
                setattr(user, key, value)
            return user

    def get_food_entry(self, entry_id):
        return self._rows["food_entries"].get(entry_id)

    def get_food_entries_by_user_id(self, user_id):
        return self._filter("food_entries", user_id=user_id)

    def create_food_entry(self, **fields):
        return self._insert("food_entries", FoodEntry, fields)

    def delete_food_entry(self, entry_id):
        return self._delete("food_entries", entry_id)

    def get_meal_plan(self, plan_id):
        return self._rows["meal_plans"].get(plan_id)

    def get_meal_plans_by_user_id(self, user_id):
        return self._filter("meal_plans", user_id=user_id)

    def create_meal_plan(self, **fields):
        return self._insert("meal_plans", MealPlan, fields)

    def delete_meal_plan(self, plan_id):
        return self._delete("meal_plans", plan_id)

    def get_workout_plan(self, plan_id):
        return self._rows["workout_plans"].get(plan_id)

    def get_workout_plans_by_user_id(self, user_id):
        return self._filter("workout_plans", user_id=user_id)

    def create_workout_plan(self, **fields):
        return self._insert("workout_plans", WorkoutPlan, fields)

    def delete_workout_plan(self, plan_id):
        return self._delete("workout_plans", plan_id)

    def get_waitlist_entry(self, entry_id):
        return self._rows["waitlist_users"].get(entry_id)

    def get_waitlist_entry_by_email(self, email):
        return self._find("waitlist_users", email=email)

    def create_waitlist_entry(self, **fields):
        return self._insert("waitlist_users", WaitlistUser, fields)

    def get_recommendations(self, user_id):
        return self._find("recommendations", user_id=user_id)

    def save_recommendations(self, user_id, data):
        with self._lock:
            existing = self.get_recommendations(user_id)
            if existing is None:
                return self._insert("recommendations", UserRecommendation, {"user_id": user_id, "data": data})
            existing.data = data
            existing.created_at = datetime.utcnow()
            return existing

    def delete_recommendations(self, user_id):
        with self._lock:
            existing = self.get_recommendations(user_id)
            if existing is None:
                return False
            return self._delete("recommendations", existing.id)


class DatabaseStorage:
    """SQLAlchemy-backed storage; every write commits immediately."""

    def _add(self, record):
        db.session.add(record)
        db.session.commit()
        return record

    def _remove(self, model, record_id: int) -> bool:
        record = db.session.get(model, record_id)
        if record is None:
            return False
        db.session.delete(record)
        db.session.commit()
        return True

    def get_user(self, user_id):
        return db.session.get(User, user_id)

    def get_user_by_username(self, username):
        return User.query.filter_by(username=username).first()

    def get_user_by_email(self, email):
        return User.query.filter_by(email=email).first()

    def create_user(self, **fields):
        return self._add(User(**fields))

    def update_user(self, user_id, **fields):
        user = db.session.get(User, user_id)
        if user is None:
            return None
        for key, value in fields.items():
            setattr(user, key, value)
        db.session.commit()
        return user

    def get_food_entry(self, entry_id):
        return db.session.get(FoodEntry, entry_id)

    def get_food_entries_by_user_id(self, user_id):
        return FoodEntry.query.filter_by(user_id=user_id).order_by(FoodEntry.id.asc()).all()

    def create_food_entry(self, **fields):
        return self._add(FoodEntry(**fields))

    def delete_food_entry(self, entry_id):
        return self._remove(FoodEntry, entry_id)

    def get_meal_plan(self, plan_id):
        return db.session.get(MealPlan, plan_id)

    def get_meal_plans_by_user_id(self, user_id):
        return MealPlan.query.filter_by(user_id=user_id).order_by(MealPlan.id.asc()).all()

    def create_meal_plan(self, **fields):
        return self._add(MealPlan(**fields))

    def delete_meal_plan(self, plan_id):
        return self._remove(MealPlan, plan_id)

    def get_workout_plan(self, plan_id):
        return db.session.get(WorkoutPlan, plan_id)

    def get_workout_plans_by_user_id(self, user_id):
        return WorkoutPlan.query.filter_by(user_id=user_id).order_by(WorkoutPlan.id.asc()).all()

    def create_workout_plan(self, **fields):
        return self._add(WorkoutPlan(**fields))

    def delete_workout_plan(self, plan_id):
        return self._remove(WorkoutPlan, plan_id)

    def get_waitlist_entry(self, entry_id):
        return db.session.get(WaitlistUser, entry_id)

    def get_waitlist_entry_by_email(self, email):
        return WaitlistUser.query.filter_by(email=email).first()

    def create_waitlist_entry(self, **fields):
        return self._add(WaitlistUser(**fields))

    def get_recommendations(self, user_id):
        return UserRecommendation.query.filter_by(user_id=user_id).first()

    def save_recommendations(self, user_id, data):
        existing = self.get_recommendations(user_id)
        if existing is None:
            return self._add(UserRecommendation(user_id=user_id, data=data))
        existing.data = data
        existing.created_at = datetime.utcnow()
        db.session.commit()
        return existing

    def delete_recommendations(self, user_id):
        existing = self.get_recommendations(user_id)
        if existing is None:
            return False
        db.session.delete(existing)
        db.session.commit()
        return True


def init_storage(app: Flask) -> Storage:
    backend = app.config.get("STORAGE_BACKEND", "database")
    if backend == "memory":
        storage = MemStorage()
    elif backend == "database":
        storage = DatabaseStorage()
    else:
        raise RuntimeError(f"Unknown STORAGE_BACKEND {backend!r}; use 'database' or 'memory'.")
    app.extensions[STORAGE_EXTENSION_KEY] = storage
    app.logger.info("Using %s storage backend", backend)
    return storage


def get_storage() -> Storage:
    return current_app.extensions[STORAGE_EXTENSION_KEY]

import threading
import unittest

from api_case import ApiTestCase
from nutriscan.storage import MemStorage, get_storage


class StorageBehaviour:
    storage = None

    def _user(self, username):
        return self.storage.create_user(username=username, email=f"{username}@example.com", password_hash="x")

    def test_created_food_entries_get_increasing_ids_and_keep_their_fields(self):
        user = self._user("alice")
        first = self.storage.create_food_entry(user_id=user.id, food_name="Apple", calories=95.0, protein=0.5)
        second = self.storage.create_food_entry(user_id=user.id, food_name="Oatmeal", calories=150.0)

        self.assertGreater(second.id, first.id)
        fetched = self.storage.get_food_entry(first.id)
        self.assertEqual(fetched.food_name, "Apple")
        self.assertEqual(fetched.calories, 95.0)
        self.assertEqual(fetched.protein, 0.5)
        self.assertEqual(fetched.user_id, user.id)
        self.assertIsNotNone(fetched.created_at)

    def test_entries_by_user_are_scoped_and_in_insertion_order(self):
        alice = self._user("alice")
        bob = self._user("bob")
        names = ["Toast", "Salad", "Soup"]
        for name in names:
            self.storage.create_food_entry(user_id=alice.id, food_name=name)
            self.storage.create_food_entry(user_id=bob.id, food_name=f"bob-{name}")

        entries = self.storage.get_food_entries_by_user_id(alice.id)
        self.assertEqual([entry.food_name for entry in entries], names)
        self.assertTrue(all(entry.user_id == alice.id for entry in entries))

    def test_delete_reports_whether_a_record_was_removed(self):
        user = self._user("alice")
        plan = self.storage.create_meal_plan(user_id=user.id, name="Day 1", meals={"breakfast": {"name": "Eggs"}})

        self.assertTrue(self.storage.delete_meal_plan(plan.id))
        self.assertIsNone(self.storage.get_meal_plan(plan.id))
        self.assertFalse(self.storage.delete_meal_plan(plan.id))

    def test_ids_are_not_reused_after_delete(self):
        user = self._user("alice")
        first = self.storage.create_workout_plan(user_id=user.id, name="A", exercises={"main": []})
        self.storage.delete_workout_plan(first.id)
        second = self.storage.create_workout_plan(user_id=user.id, name="B", exercises={"main": []})
        self.assertGreater(second.id, first.id)

    def test_lookup_users_by_username_and_email(self):
        user = self._user("alice")
        self.assertEqual(self.storage.get_user_by_username("alice").id, user.id)
        self.assertEqual(self.storage.get_user_by_email("alice@example.com").id, user.id)
        self.assertIsNone(self.storage.get_user_by_username("nobody"))

    def test_update_user_changes_only_given_fields(self):
        user = self._user("alice")
        updated = self.storage.update_user(user.id, full_name="Alice Doe")
        self.assertEqual(updated.full_name, "Alice Doe")
        self.assertEqual(updated.username, "alice")
        self.assertIsNone(self.storage.update_user(9999, full_name="Ghost"))

    def test_saving_recommendations_replaces_previous_data(self):
        user = self._user("alice")
        self.storage.save_recommendations(user.id, {"healthInsights": ["first"]})
        self.storage.save_recommendations(user.id, {"healthInsights": ["second"]})

        cached = self.storage.get_recommendations(user.id)
        self.assertEqual(cached.data, {"healthInsights": ["second"]})
        self.assertTrue(self.storage.delete_recommendations(user.id))
        self.assertIsNone(self.storage.get_recommendations(user.id))
        self.assertFalse(self.storage.delete_recommendations(user.id))

    def test_waitlist_lookup_by_email(self):
        entry = self.storage.create_waitlist_entry(email="fan@example.com", full_name="Fan", interests="meal plans")
        self.assertEqual(self.storage.get_waitlist_entry(entry.id).email, "fan@example.com")
        self.assertEqual(self.storage.get_waitlist_entry_by_email("fan@example.com").id, entry.id)
        self.assertIsNone(self.storage.get_waitlist_entry_by_email("other@example.com"))


class MemStorageTestCase(StorageBehaviour, unittest.TestCase):
    def setUp(self):
        self.storage = MemStorage()

    def _run_threads(self, target, count):
        errors = []
        barrier = threading.Barrier(count)

        def worker(index):
            barrier.wait()
            try:
                target(index)
            except Exception as exc:
                errors.append(exc)

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(count)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        return errors

    def test_history_reads_survive_concurrent_inserts(self):
        user = self._user("alice")

        def hammer(index):
            for n in range(200):
                if index % 2:
                    self.storage.create_food_entry(user_id=user.id, food_name=f"meal-{index}-{n}")
                else:
                    self.storage.get_food_entries_by_user_id(user.id)

        self.assertEqual(self._run_threads(hammer, 8), [])
        entries = self.storage.get_food_entries_by_user_id(user.id)
        self.assertEqual(len(entries), 4 * 200)
        self.assertEqual(len({entry.id for entry in entries}), len(entries))

    def test_concurrent_saves_keep_one_cached_row_per_user(self):
        user = self._user("alice")

        def save(index):
            self.storage.save_recommendations(user.id, {"healthInsights": [str(index)]})

        self.assertEqual(self._run_threads(save, 8), [])
        self.assertEqual(len(self.storage._filter("recommendations", user_id=user.id)), 1)


class DatabaseStorageTestCase(StorageBehaviour, ApiTestCase):
    def setUp(self):
        super().setUp()
        self.ctx = self.app.app_context()
        self.ctx.push()
        self.storage = get_storage()

    def tearDown(self):
        self.ctx.pop()
        super().tearDown()


if __name__ == "__main__":
    unittest.main()

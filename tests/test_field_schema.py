import unittest

from src.schemas.vacancy import FieldKind
from src.services.field_schema import (
    VACANCY_FIELDS,
    get_field,
    get_value,
    is_filled,
    is_unfilled,
    new_record,
    required_fields,
    set_value,
)


class TestVacancyFields(unittest.TestCase):

    def test_field_names_are_unique(self):
        names = [f.name for f in VACANCY_FIELDS]
        self.assertEqual(len(names), len(set(names)))

    def test_required_fields(self):
        self.assertEqual(
            [f.name for f in required_fields()],
            ["title", "department", "domain", "experience.from", "core_skills"],
        )

    def test_enum_fields_have_options(self):
        for field in VACANCY_FIELDS:
            if field.kind == FieldKind.ENUM:
                self.assertTrue(field.options, field.name)
            else:
                self.assertEqual(field.options, (), field.name)

    def test_every_field_has_a_fallback_question(self):
        for field in VACANCY_FIELDS:
            self.assertTrue(field.question.strip(), field.name)


class TestRecordPaths(unittest.TestCase):

    def test_new_record_has_nested_shape(self):
        record = new_record()
        self.assertIsNone(record["title"])
        self.assertEqual(record["location"], {"type": None, "city": None})
        self.assertEqual(record["experience"], {"from": None, "to": None})
        self.assertEqual(record["core_skills"], [])
        self.assertIsNone(record["education"])

    def test_get_value_resolves_dot_paths(self):
        record = {"salary": {"min": 1000, "max": None}}
        self.assertEqual(get_value(record, "salary.min"), 1000)
        self.assertIsNone(get_value(record, "salary.max"))
        self.assertIsNone(get_value(record, "salary.currency"))
        self.assertIsNone(get_value(record, "title"))
        self.assertIsNone(get_value(None, "title"))

    def test_set_value_returns_copy(self):
        record = new_record()
        updated = set_value(record, "location.city", "Berlin")
        self.assertEqual(updated["location"]["city"], "Berlin")
        self.assertIsNone(record["location"]["city"])

    def test_set_value_creates_missing_groups(self):
        updated = set_value({}, "experience.from", 2)
        self.assertEqual(updated, {"experience": {"from": 2}})


class TestUnfilled(unittest.TestCase):

    def test_sentinels_are_unfilled(self):
        title = get_field("title")
        skills = get_field("core_skills")
        self.assertTrue(is_unfilled(title, None))
        self.assertTrue(is_unfilled(title, ""))
        self.assertTrue(is_unfilled(title, "   "))
        self.assertTrue(is_unfilled(skills, []))
        self.assertFalse(is_unfilled(title, "Developer"))
        self.assertFalse(is_unfilled(skills, ["Python"]))

    def test_false_and_zero_are_filled(self):
        education = get_field("education")
        experience = get_field("experience.from")
        self.assertFalse(is_unfilled(education, False))
        self.assertTrue(is_unfilled(education, None))
        self.assertFalse(is_unfilled(experience, 0))

    def test_is_filled_reads_record(self):
        record = set_value(new_record(), "is_test_task", False)
        self.assertTrue(is_filled(record, get_field("is_test_task")))
        self.assertFalse(is_filled(record, get_field("education")))


if __name__ == "__main__":
    unittest.main()

import unittest
from unittest.mock import AsyncMock, MagicMock

from src.services.document_generator import (
    FALLBACK_NOTICE,
    NOT_SPECIFIED,
    DocumentGenerator,
    MissingFieldsError,
    fallback_document,
    prompt_values,
)
from src.services.field_schema import get_field, new_record, set_value
from src.services.llm_client import LLMError
from src.services.question_phraser import QuestionPhraser


def _llm(reply=None, error=None):
    llm = MagicMock()
    llm.complete = AsyncMock(return_value=reply, side_effect=error)
    return llm


def _complete_record():
    record = new_record()
    record = set_value(record, "title", "Frontend Developer")
    record = set_value(record, "department", "Engineering")
    record = set_value(record, "domain", "Fintech")
    record = set_value(record, "experience.from", 3)
    return set_value(record, "core_skills", ["React", "TypeScript"])


class TestPromptValues(unittest.TestCase):

    def test_formats_values(self):
        record = set_value(_complete_record(), "location.type", "hybrid")
        record = set_value(record, "location.city", "Lviv")
        record = set_value(record, "salary.max", 5000)
        record = set_value(record, "is_test_task", False)
        values = prompt_values(record)

        self.assertEqual(values["location"], "hybrid, Lviv")
        self.assertEqual(values["experience"], "3+ years")
        self.assertEqual(values["salary"], "up to 5000 USD")
        self.assertEqual(values["core_skills"], "React, TypeScript")
        self.assertEqual(values["test_task"], "No")
        self.assertEqual(values["education"], NOT_SPECIFIED)
        self.assertEqual(values["secondary_skills"], NOT_SPECIFIED)

    def test_fallback_document(self):
        text = fallback_document(_complete_record())
        self.assertTrue(text.startswith("# Frontend Developer"))
        self.assertIn("**Experience:** 3+ years", text)
        self.assertIn("**Skills:** React, TypeScript", text)
        self.assertIn("**Department:** Engineering", text)
        self.assertIn("**Domain:** Fintech", text)
        self.assertTrue(text.endswith(FALLBACK_NOTICE))


class TestDocumentGenerator(unittest.IsolatedAsyncioTestCase):

    async def test_generate(self):
        llm = _llm("# Frontend Developer\n\nJoin us!")
        result = await DocumentGenerator(llm).generate(_complete_record())

        self.assertEqual(result.text, "# Frontend Developer\n\nJoin us!")
        self.assertFalse(result.used_fallback)
        prompt = llm.complete.await_args.args[0][-1]["content"]
        self.assertIn("**Title:** Frontend Developer", prompt)
        self.assertIn("**Core Skills:** React, TypeScript", prompt)

    async def test_llm_failure_uses_fallback(self):
        result = await DocumentGenerator(_llm(error=LLMError("down"))).generate(_complete_record())
        self.assertTrue(result.used_fallback)
        self.assertIn("Frontend Developer", result.text)
        self.assertIn(FALLBACK_NOTICE, result.text)

    async def test_generate_strict_rejects_incomplete_record(self):
        llm = _llm("doc")
        record = set_value(_complete_record(), "core_skills", [])

        with self.assertRaises(MissingFieldsError) as ctx:
            await DocumentGenerator(llm).generate_strict(record)

        self.assertEqual([f.name for f in ctx.exception.missing], ["core_skills"])
        llm.complete.assert_not_awaited()

    async def test_generate_strict_accepts_complete_record(self):
        result = await DocumentGenerator(_llm("doc")).generate_strict(_complete_record())
        self.assertEqual(result.text, "doc")


class TestQuestionPhraser(unittest.IsolatedAsyncioTestCase):

    async def test_uses_llm_question(self):
        llm = _llm('"Which department will this role be in?"')
        question = await QuestionPhraser(llm).phrase_question(get_field("department"))

        self.assertEqual(question, "Which department will this role be in?")
        prompt = llm.complete.await_args.args[0][0]["content"]
        self.assertIn("Valid options: R&D, Product, IT, Engineering", prompt)

    async def test_falls_back_to_static_question(self):
        field = get_field("salary.min")
        question = await QuestionPhraser(_llm(error=LLMError("down"))).phrase_question(field)
        self.assertEqual(question, field.question)

    async def test_quote_only_reply_falls_back(self):
        field = get_field("title")
        self.assertEqual(await QuestionPhraser(_llm('""')).phrase_question(field), field.question)


if __name__ == "__main__":
    unittest.main()

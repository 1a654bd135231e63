import json
import unittest
from unittest.mock import AsyncMock, MagicMock

from src.schemas.extraction import ExtractionStatus
from src.services.data_extraction import (
    REPHRASE_MESSAGE,
    DataExtractor,
    MalformedExtractionError,
    parse_extraction_response,
)
from src.services.field_schema import new_record, set_value
from src.services.llm_client import LLMError


def _llm(reply=None, error=None):
    llm = MagicMock()
    llm.complete = AsyncMock(return_value=reply, side_effect=error)
    return llm


def _reply(status="SUCCESS", record=None, commentary="ok"):
    return json.dumps({
        "status": status,
        "updatedVacancy": record if record is not None else new_record(),
        "commentary": commentary,
    })


class TestParseExtractionResponse(unittest.TestCase):

    def test_parses_plain_json(self):
        record = set_value(new_record(), "title", "Data Engineer")
        result = parse_extraction_response(_reply(record=record))
        self.assertEqual(result.status, ExtractionStatus.SUCCESS)
        self.assertEqual(result.updated_record["title"], "Data Engineer")
        self.assertEqual(result.commentary, "ok")

    def test_strips_code_fences(self):
        content = "```json\n" + _reply(status="CLARIFICATION_NEEDED", commentary="Which city?") + "\n```"
        result = parse_extraction_response(content)
        self.assertEqual(result.status, ExtractionStatus.CLARIFICATION_NEEDED)
        self.assertEqual(result.commentary, "Which city?")

    def test_status_is_case_insensitive(self):
        self.assertEqual(parse_extraction_response(_reply(status="success")).status, ExtractionStatus.SUCCESS)

    def test_rejects_invalid_json(self):
        with self.assertRaises(MalformedExtractionError):
            parse_extraction_response("Sure! The title is Developer.")

    def test_rejects_missing_keys(self):
        with self.assertRaises(MalformedExtractionError):
            parse_extraction_response(json.dumps({"status": "SUCCESS"}))
        with self.assertRaises(MalformedExtractionError):
            parse_extraction_response(json.dumps({"updatedVacancy": {}}))

    def test_rejects_unknown_status(self):
        with self.assertRaises(MalformedExtractionError):
            parse_extraction_response(_reply(status="MAYBE"))

    def test_rejects_non_object(self):
        with self.assertRaises(MalformedExtractionError):
            parse_extraction_response("[1, 2, 3]")


class TestDataExtractor(unittest.IsolatedAsyncioTestCase):

    async def test_returns_parsed_result(self):
        record = set_value(new_record(), "core_skills", ["React"])
        llm = _llm(_reply(record=record))
        extractor = DataExtractor(llm)

        result = await extractor.extract(new_record(), "React", history=[], last_asked_field="core_skills")

        self.assertEqual(result.status, ExtractionStatus.SUCCESS)
        self.assertEqual(result.updated_record["core_skills"], ["React"])
        self.assertTrue(llm.complete.await_args.kwargs["json_mode"])

    async def test_prompt_includes_context(self):
        llm = _llm(_reply())
        extractor = DataExtractor(llm)
        history = [{"role": "assistant", "content": "What is the job title?"}]

        await extractor.extract(new_record(), "Designer", history=history, last_asked_field="title")

        messages = llm.complete.await_args.args[0]
        self.assertEqual(messages[1], history[0])
        prompt = messages[-1]["content"]
        self.assertIn('"Designer"', prompt)
        self.assertIn('The last question I asked was about "Job Title"', prompt)
        self.assertIn('"experience.from"', prompt)

    async def test_unparsable_reply_becomes_clarification(self):
        current = set_value(new_record(), "title", "Designer")
        extractor = DataExtractor(_llm("I don't know"))

        result = await extractor.extract(current, "blah")

        self.assertEqual(result.status, ExtractionStatus.CLARIFICATION_NEEDED)
        self.assertEqual(result.commentary, REPHRASE_MESSAGE)
        self.assertEqual(result.updated_record, current)

    async def test_llm_error_becomes_clarification(self):
        extractor = DataExtractor(_llm(error=LLMError("timeout")))
        result = await extractor.extract(new_record(), "anything")
        self.assertEqual(result.status, ExtractionStatus.CLARIFICATION_NEEDED)
        self.assertEqual(result.commentary, REPHRASE_MESSAGE)

    async def test_empty_clarification_gets_generic_commentary(self):
        extractor = DataExtractor(_llm(_reply(status="CLARIFICATION_NEEDED", commentary="")))
        result = await extractor.extract(new_record(), "hmm")
        self.assertEqual(result.commentary, REPHRASE_MESSAGE)


if __name__ == "__main__":
    unittest.main()

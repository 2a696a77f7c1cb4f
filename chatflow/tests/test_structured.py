"""Tests for EntityOutputConverter."""

from typing import List

from django.test import SimpleTestCase
from pydantic import BaseModel

from chatflow.service.errors import ChatFlowError, OutputParseError
from chatflow.service.structured import EntityOutputConverter


class ActorFilms(BaseModel):
    actor: str
    movies: List[str]


class EntityOutputConverterTests(SimpleTestCase):
    def setUp(self):
        super().setUp()
        self.converter = EntityOutputConverter(ActorFilms)

    def test_format_instructions_carry_the_schema(self):
        instructions = self.converter.format_instructions()
        self.assertIn("JSON Schema", instructions)
        self.assertIn('"actor"', instructions)
        self.assertIn('"movies"', instructions)

    def test_converts_plain_json(self):
        films = self.converter.convert('{"actor": "Tom Hanks", "movies": ["Big", "Splash"]}')
        self.assertEqual(films, ActorFilms(actor="Tom Hanks", movies=["Big", "Splash"]))

    def test_converts_fenced_json(self):
        text = '```json\n{"actor": "Tom Hanks", "movies": []}\n```'
        self.assertEqual(self.converter.convert(text).actor, "Tom Hanks")

    def test_strip_fences_leaves_bare_text_alone(self):
        self.assertEqual(EntityOutputConverter.strip_fences('  {"a": 1} '), '{"a": 1}')

    def test_invalid_answer_raises_with_raw_text(self):
        with self.assertRaises(OutputParseError) as cm:
            self.converter.convert("Tom Hanks was in Big.")
        self.assertIsInstance(cm.exception, ChatFlowError)
        self.assertEqual(cm.exception.text, "Tom Hanks was in Big.")
        self.assertIn("ActorFilms", str(cm.exception))

    def test_missing_field_raises(self):
        with self.assertRaises(OutputParseError):
            self.converter.convert('{"actor": "Tom Hanks"}')

    def test_empty_answer_raises(self):
        with self.assertRaises(OutputParseError):
            self.converter.convert("   ")

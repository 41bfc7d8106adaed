"""
Tests for ExplanationGenerator.
"""

import pytest

from app.domain.entities import Book
from app.domain.services import ExplanationGenerator, QueryIntentParser


@pytest.fixture
def generator():
    return ExplanationGenerator()


@pytest.fixture
def parser():
    return QueryIntentParser()


class TestGenerateExplanation:
    """Context-specific reasons and generic fallbacks."""

    def test_author_match(self, generator, parser):
        query = "books by Brandon Sanderson"
        book = Book(id="b1", title="Mistborn", author="Brandon Sanderson", rating=4.5)

        explanation = generator.generate_explanation(query, book, parser.classify(query))

        assert explanation == "Written by Brandon Sanderson, the author you asked for."

    def test_genre_match_names_the_category(self, generator, parser):
        query = "fantasy books"
        book = Book(id="b1", title="The Hobbit", author="J.R.R. Tolkien", categories=["Epic Fantasy"])

        explanation = generator.generate_explanation(query, book, parser.classify(query))

        assert "Epic Fantasy" in explanation
        assert "fantasy genre" in explanation
        assert not ExplanationGenerator.is_generic(explanation)

    def test_similar_to_mentions_reference(self, generator, parser):
        query = "books similar to Dune"
        book = Book(id="b1", title="Hyperion", author="Dan Simmons")

        explanation = generator.generate_explanation(query, book, parser.classify(query))

        assert explanation.startswith("Picked for readers who enjoyed dune")

    def test_theme_match(self, generator, parser):
        query = "something about dragons"
        book = Book(id="b1", title="Temeraire", description="A dragon joins the Napoleonic wars.")

        explanation = generator.generate_explanation(query, book, parser.classify(query))

        assert "Explores dragon" in explanation

    def test_generic_for_highly_rated_book(self, generator, parser):
        query = "something to read"
        book = Book(id="b1", title="Untitled", rating=4.5)

        explanation = generator.generate_explanation(query, book, parser.classify(query))

        assert explanation == "Highly rated recommendation (4.5/5)"

    def test_generic_for_other_books(self, generator, parser):
        query = "something to read"
        book = Book(id="b1", title="Untitled", rating=3.0)

        explanation = generator.generate_explanation(query, book, parser.classify(query))

        assert explanation == "Matches your search for 'something to read'"
        assert ExplanationGenerator.is_generic(explanation)

    def test_explanations_are_cached(self, generator, parser):
        query = "books by Brandon Sanderson"
        book = Book(id="b1", title="Mistborn", author="Brandon Sanderson")
        enhanced = parser.classify(query)

        first = generator.generate_explanation(query, book, enhanced)
        second = generator.generate_explanation(query, book, enhanced)

        assert first == second
        assert generator.cache_stats().total == 1

        generator.clear_cache()
        assert generator.cache_stats().total == 0


class TestBatchExplanations:

    def test_batch_attaches_explanations_without_mutating_input(self, generator, parser):
        query = "books by Brandon Sanderson"
        books = [
            Book(id="b1", title="Mistborn", author="Brandon Sanderson"),
            Book(id="b2", title="Elantris", author="Brandon Sanderson"),
        ]

        explained = generator.generate_batch_explanations(query, books, parser.classify(query))

        assert all(book.explanation for book in explained)
        assert all(book.explanation is None for book in books)

    def test_top_explanations_only_explains_head(self, generator, parser):
        query = "books by Brandon Sanderson"
        books = [
            Book(id="b1", title="Mistborn", author="Brandon Sanderson"),
            Book(id="b2", title="Elantris", author="Brandon Sanderson"),
        ]

        explained = generator.generate_top_explanations(query, books, parser.classify(query), top_n=1)

        assert explained[0].explanation is not None
        assert explained[1].explanation is None

    def test_is_generic_for_short_text(self):
        assert ExplanationGenerator.is_generic("Good book.") is True
        assert ExplanationGenerator.is_generic("Written by Ursula K. Le Guin, the author you asked for.") is False

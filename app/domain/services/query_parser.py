"""
Template-based query understanding.

QueryIntentParser turns free text into an EnhancedQuery. It is a pure
function of the input and the static tables in app.domain.templates: no
I/O, no randomness, never raises for any string input.

Pattern assignment is exclusive and first-match-wins in this order:
author, genre, setting, mood, pace, perspective, time, audience, length,
complexity, theme, award, general. Similar-to queries override whatever
pattern was assigned before them. Filters, on the other hand, accumulate
from every step that matches.
"""

import logging
from typing import List, Optional

from app.domain import templates as t
from app.domain.value_objects import EnhancedQuery, QueryFilters, QueryPattern, SearchHints

logger = logging.getLogger(__name__)


class QueryIntentParser:
    """
    Classifies a raw query into an EnhancedQuery.

    Usage:
        parser = QueryIntentParser()
        enhanced = parser.classify("fantasy books by Brandon Sanderson")
        enhanced.pattern            # QueryPattern.AUTHOR
        enhanced.filters.author     # "Brandon Sanderson"
    """

    def classify(self, query: str) -> EnhancedQuery:
        """
        Classify a query.

        Args:
            query: Raw user text; may be empty

        Returns:
            EnhancedQuery with exactly one pattern. Unmatched (and empty)
            queries resolve to QueryPattern.GENERAL with empty filters and
            default hints.
        """
        text = (query or "").strip()
        lower = text.lower()

        pattern = QueryPattern.GENERAL
        extracted: List[str] = []
        expanded: List[str] = []

        author: Optional[str] = None
        genres: List[str] = []
        themes: List[str] = []
        settings: List[str] = []
        min_rating: Optional[float] = None
        max_pages: Optional[int] = None
        min_year: Optional[int] = None
        max_year: Optional[int] = None
        audience: Optional[str] = None

        semantic_weight = 0.6
        metadata_weight = 0.4
        rating_boost = 1.0
        recency_boost = 1.0

        # -----------------------------------------------------------------------
        # Author (case preserved for the captured name)
        # -----------------------------------------------------------------------
        for regex in t.AUTHOR_PATTERNS:
            match = regex.search(text)
            if not match:
                continue
            name = self._clean_author_name(match.group(1))
            if len(name) > 2:
                author = name
                extracted.append(name)
                pattern = QueryPattern.AUTHOR
                metadata_weight, semantic_weight = 0.8, 0.2
                break

        # -----------------------------------------------------------------------
        # Genre
        # -----------------------------------------------------------------------
        if pattern == QueryPattern.GENERAL:
            genre = None
            for regex in t.GENRE_PATTERNS:
                match = regex.search(lower)
                if match:
                    genre = t.find_genre(match.group(1))
                    if genre:
                        break
            if genre is None:
                genre = t.find_genre(lower)

            if genre:
                synonyms = t.GENRE_EXPANSIONS[genre]
                pattern = QueryPattern.GENRE
                semantic_weight, metadata_weight = 0.7, 0.3
                extracted.append(genre)
                genres.extend(synonyms)
                expanded.extend(synonyms)

        # -----------------------------------------------------------------------
        # Setting
        # -----------------------------------------------------------------------
        for regex in t.SETTING_PATTERNS:
            match = regex.search(lower)
            if match:
                place = " ".join(match.group(1).split())
                if place:
                    settings.append(place)
                    extracted.append(place)
                    if pattern == QueryPattern.GENERAL:
                        pattern = QueryPattern.SETTING
                break

        # -----------------------------------------------------------------------
        # Mood, pace, perspective (signals only, no filters)
        # -----------------------------------------------------------------------
        signals = (
            (t.MOOD_PATTERNS, QueryPattern.MOOD, 0.8),
            (t.PACE_PATTERNS, QueryPattern.PACE, 0.7),
            (t.PERSPECTIVE_PATTERNS, QueryPattern.PERSPECTIVE, 0.6),
        )
        for regexes, signal_pattern, weight in signals:
            if pattern == QueryPattern.GENERAL and self._any_match(regexes, lower):
                pattern = signal_pattern
                semantic_weight = weight

        # -----------------------------------------------------------------------
        # Similar-to always wins over earlier patterns
        # -----------------------------------------------------------------------
        for regex in t.SIMILAR_PATTERNS:
            match = regex.search(lower)
            if match:
                pattern = QueryPattern.SIMILAR_TO
                semantic_weight = 0.9
                reference = " ".join(match.group(1).split()).strip(" .!?")
                if reference and reference not in extracted:
                    extracted.append(reference)
                break

        # -----------------------------------------------------------------------
        # Time range
        # -----------------------------------------------------------------------
        time_matched = False
        if t.RECENT_PATTERN.search(lower):
            min_year = t.RECENT_MIN_YEAR
            recency_boost = 1.3
            time_matched = True
        elif t.CLASSIC_PATTERN.search(lower):
            max_year = t.CLASSIC_MAX_YEAR
            rating_boost = 1.2
            time_matched = True

        year_match = t.EXPLICIT_YEAR_PATTERN.search(lower)
        if year_match:
            keyword, year = year_match.group(1), int(year_match.group(2))
            if keyword in ("after", "since"):
                min_year = year
            elif keyword == "before":
                max_year = year
            else:
                min_year = max_year = year
            time_matched = True

        if time_matched and pattern == QueryPattern.GENERAL:
            pattern = QueryPattern.TIME_BASED

        # Named periods overwrite any range set above.
        for period, (start_year, end_year) in t.HISTORICAL_PERIODS.items():
            if period in lower:
                min_year, max_year = start_year, end_year
                settings.append(period)
                if pattern == QueryPattern.GENERAL:
                    pattern = QueryPattern.SETTING

        # -----------------------------------------------------------------------
        # Audience
        # -----------------------------------------------------------------------
        for tag, regex in t.AUDIENCE_PATTERNS:
            if regex.search(lower):
                audience = tag
                if pattern == QueryPattern.GENERAL:
                    pattern = QueryPattern.AUDIENCE
                break

        # -----------------------------------------------------------------------
        # Length and complexity
        # -----------------------------------------------------------------------
        if t.SHORT_LENGTH_PATTERN.search(lower):
            max_pages = t.MAX_PAGES_FOR_SHORT
            if pattern == QueryPattern.GENERAL:
                pattern = QueryPattern.LENGTH
        elif t.LONG_LENGTH_PATTERN.search(lower) and pattern == QueryPattern.GENERAL:
            pattern = QueryPattern.LENGTH

        if t.EASY_PATTERN.search(lower):
            rating_boost = 1.1
            if pattern == QueryPattern.GENERAL:
                pattern = QueryPattern.COMPLEXITY
        elif t.COMPLEX_PATTERN.search(lower) and pattern == QueryPattern.GENERAL:
            pattern = QueryPattern.COMPLEXITY

        # -----------------------------------------------------------------------
        # Themes
        # -----------------------------------------------------------------------
        for theme in t.match_themes(lower):
            themes.append(theme)
            if theme not in extracted:
                extracted.append(theme)
            for keyword in t.THEME_KEYWORDS[theme]:
                if keyword not in expanded:
                    expanded.append(keyword)
            if pattern == QueryPattern.GENERAL:
                pattern = QueryPattern.THEME

        if t.AWARD_PATTERN.search(lower) and pattern == QueryPattern.GENERAL:
            pattern = QueryPattern.AWARD

        # -----------------------------------------------------------------------
        # Remaining meaningful words
        # -----------------------------------------------------------------------
        seen = {term.lower() for term in extracted}
        for token in t.TOKEN_PATTERN.findall(lower):
            token = token.strip("'-")
            if len(token) <= 3 or token in t.STOP_WORDS or token in seen:
                continue
            seen.add(token)
            extracted.append(token)

        # -----------------------------------------------------------------------
        # Quality boost, independent of pattern
        # -----------------------------------------------------------------------
        if t.QUALITY_PATTERN.search(lower):
            min_rating = t.QUALITY_MIN_RATING
            rating_boost = 1.5

        return EnhancedQuery(
            original_query=text,
            pattern=pattern,
            extracted_terms=extracted,
            expanded_terms=expanded,
            filters=QueryFilters(
                author=author,
                genres=genres,
                themes=themes,
                min_rating=min_rating,
                max_pages=max_pages,
                min_year=min_year,
                max_year=max_year,
                audience=audience,
                settings=settings,
            ),
            search_hints=SearchHints(
                semantic_weight=semantic_weight,
                metadata_weight=metadata_weight,
                rating_boost=rating_boost,
                recency_boost=recency_boost,
            ),
        )

    def detect_pattern(self, query: str) -> QueryPattern:
        return self.classify(query).pattern

    @staticmethod
    def _any_match(regexes, text: str) -> bool:
        return any(regex.search(text) for regex in regexes)

    @staticmethod
    def _clean_author_name(raw: str) -> str:
        """Collapse whitespace, drop lead-in words and trailing genre words picked up by a capture."""
        words = raw.split()
        while words and (
            words[0].lower() in t.AUTHOR_LEAD_IN_WORDS or words[0].lower() in t.STOP_WORDS
        ):
            words.pop(0)
        while len(words) > 1 and _strip_trailing_genre(words):
            pass
        return " ".join(words).strip(" .,'-")


def _strip_trailing_genre(words: List[str]) -> bool:
    """Remove one genre phrase from the end of `words`, keeping at least one word."""
    lowered = [word.lower() for word in words]
    for phrase in t.AUTHOR_TRAILING_GENRE_PHRASES:
        size = len(phrase)
        if size < len(words) and tuple(lowered[-size:]) == phrase:
            del words[-size:]
            return True
    return False

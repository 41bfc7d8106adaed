"""
Static pattern tables used to understand queries and explain results.

Everything here is built once at import time and only read afterwards,
so the tables are shared across requests without locking. Dict order is
significant: when several entries match, earlier entries win ties.
"""

import re
import string
from typing import Dict, List, Optional, Pattern, Set, Tuple

_I = re.IGNORECASE

# Genre name -> synonyms. The first synonym is the canonical display form.
GENRE_EXPANSIONS: Dict[str, List[str]] = {
    "fantasy": ["fantasy", "epic fantasy", "high fantasy", "sword and sorcery", "magical realism", "urban fantasy", "dark fantasy"],
    "sci-fi": ["science fiction", "sci-fi", "scifi", "space opera", "cyberpunk", "dystopian", "post-apocalyptic", "hard science fiction", "soft science fiction"],
    "mystery": ["mystery", "detective", "crime", "thriller", "suspense", "whodunit", "noir", "cozy mystery", "police procedural"],
    "romance": ["romance", "love story", "romantic", "contemporary romance", "historical romance", "romantic comedy", "paranormal romance"],
    "horror": ["horror", "scary", "terror", "supernatural horror", "psychological horror", "gothic", "dark", "creepy"],
    "historical": ["historical fiction", "historical", "period piece", "historical drama", "historical novel"],
    "biography": ["biography", "memoir", "autobiography", "life story", "true story", "biographical"],
    "self-help": ["self-help", "personal development", "self-improvement", "motivational", "psychology", "self care"],
    "business": ["business", "entrepreneurship", "management", "leadership", "finance", "economics", "startup"],
    "philosophy": ["philosophy", "philosophical", "ethics", "metaphysics", "existential", "epistemology"],
    "young adult": ["young adult", "ya", "teen", "coming of age", "ya fiction", "teenage"],
    "children": ["children", "kids", "juvenile", "picture book", "middle grade", "chapter book"],
    "poetry": ["poetry", "poems", "verse", "poetic", "collection of poems"],
    "drama": ["drama", "dramatic", "play", "theater", "theatrical"],
    "adventure": ["adventure", "action", "quest", "journey", "expedition", "exploration"],
    "literary": ["literary fiction", "literary", "contemporary fiction", "serious fiction", "literary novel"],
    "thriller": ["thriller", "suspense", "action thriller", "spy thriller", "techno-thriller"],
    "western": ["western", "wild west", "frontier", "cowboy"],
    "satire": ["satire", "satirical", "parody", "social satire"],
    "graphic novel": ["graphic novel", "comic", "manga", "comics", "illustrated novel"],
    "true crime": ["true crime", "crime", "criminal", "murder case"],
    "travel": ["travel", "travelogue", "travel writing", "journey"],
    "cookbook": ["cookbook", "cooking", "recipes", "culinary"],
    "spirituality": ["spirituality", "spiritual", "new age", "mindfulness", "meditation"],
    "science": ["science", "popular science", "scientific", "physics", "biology", "chemistry", "astronomy"],
    "history": ["history", "historical", "world history", "military history"],
    "politics": ["politics", "political", "government", "political science"],
    "art": ["art", "art history", "visual arts", "photography", "painting"],
    "music": ["music", "musical", "music history", "music theory"],
}

# A capture stops at a trailing "books"/"novels", at a clause word, or at the end.
_AUTHOR_END = r"(?=\s+(?:books?|novels?|about|with|that|where|featuring|set|for)\b|\s*[,!?;]|\s*$)"
_NAME = r"[a-zA-Z][a-zA-Z\s.'-]*?"

AUTHOR_PATTERNS: List[Pattern[str]] = [
    re.compile(rf"(?:books?\s+)?(?:written\s+)?\bby\s+({_NAME}){_AUTHOR_END}", _I),
    re.compile(rf"\b(?:works?|writings?)\s+(?:of|from)\s+({_NAME}){_AUTHOR_END}", _I),
    re.compile(r"\b([a-zA-Z.'-]+(?:\s+[a-zA-Z.'-]+){0,2})'s\s+(?:books?|novels?|works?|writings?)\b", _I),
    re.compile(rf"\bauthor(?::\s*|\s+)({_NAME}){_AUTHOR_END}", _I),
]

# Leading words that creep into a possessive capture ("i love stephen king's books").
AUTHOR_LEAD_IN_WORDS = frozenset({"author", "authors", "i", "love", "like", "liked", "enjoy", "enjoyed", "more", "other", "read", "all", "of", "some"})

# Genre phrases that trail a captured name ("author: neil gaiman fantasy novels"), longest first.
AUTHOR_TRAILING_GENRE_PHRASES: List[Tuple[str, ...]] = sorted(
    {tuple(synonym.split()) for synonyms in GENRE_EXPANSIONS.values() for synonym in synonyms},
    key=len,
    reverse=True,
)

GENRE_PATTERNS: List[Pattern[str]] = [
    re.compile(r"([a-z][a-z\s-]*?)\s+(?:books?|novels?|literature|stories)\b"),
    re.compile(r"(?:books?|novels?)\s+(?:in\s+)?(?:the\s+)?([a-z][a-z\s-]*?)\s+(?:genre|category)\b"),
    re.compile(r"\bgenre:?\s*([a-z][a-z-]*(?:\s+[a-z][a-z-]*)?)(?:\s|$)"),
]

SETTING_PATTERNS: List[Pattern[str]] = [
    re.compile(r"\bset\s+in\s+([a-z][a-z\s]*?)(?=\s+(?:with|about|that|where|during|and|for)\b|\s*[,.!?]|\s*$)"),
    re.compile(r"\btakes?\s+place\s+in\s+([a-z][a-z\s]*?)(?=\s+(?:with|about|that|where|during|and|for)\b|\s*[,.!?]|\s*$)"),
    re.compile(r"\b(?:located|based)\s+in\s+([a-z][a-z\s]*?)(?=\s+(?:with|about|that|where|during|and|for)\b|\s*[,.!?]|\s*$)"),
]

MOOD_PATTERNS: List[Pattern[str]] = [
    re.compile(r"\b(?:feel|feeling|mood|atmosphere|vibe|tone)\s+(?:like\s+)?([a-z\s-]+)"),
    re.compile(
        r"\b(cozy|dark|light|uplifting|depressing|happy|sad|emotional|funny|humorous|serious|"
        r"intense|relaxing|heartwarming|bittersweet|melancholic|optimistic|pessimistic|"
        r"suspenseful|tense|peaceful|violent|gritty|whimsical|playful)\b"
    ),
]

PACE_PATTERNS: List[Pattern[str]] = [
    re.compile(r"\b(fast[\s-]?paced|quick[\s-]?paced|action[\s-]?packed|thrilling|exciting)\b"),
    re.compile(r"\b(slow[\s-]?paced|slow[\s-]?burn|contemplative|meditative|leisurely)\b"),
]

PERSPECTIVE_PATTERNS: List[Pattern[str]] = [
    re.compile(r"\bfirst[\s-]?person\b"),
    re.compile(r"\bthird[\s-]?person\b"),
    re.compile(r"\b(?:multiple\s+(?:pov|perspectives?|viewpoints?|narrators?)|alternating\s+perspectives?)\b"),
    re.compile(r"\bunreliable\s+narrator\b"),
]

SIMILAR_PATTERNS: List[Pattern[str]] = [
    re.compile(r"\bsimilar\s+to\s+(.+)"),
    re.compile(r"\b(?:more|another|other)\s+(?:books?|novels?)\s+like\s+(.+)"),
    re.compile(r"\b(?:books?|novels?|something|anything|stuff)\s+like\s+(.+)"),
    re.compile(r"^like\s+(.+)"),
    re.compile(r"\bif\s+(?:i|you)\s+(?:liked?|loved?|enjoyed)\s+(.+)"),
    re.compile(r"\breminds?\s+me\s+of\s+(.+)"),
    re.compile(r"\bin\s+the\s+style\s+of\s+(.+)"),
]

RECENT_PATTERN = re.compile(r"\b(recent|new|newest|latest|modern|contemporary|current|2020s|2010s)\b")
CLASSIC_PATTERN = re.compile(r"\b(classic|classics|old|vintage|timeless|traditional|golden age)\b")
EXPLICIT_YEAR_PATTERN = re.compile(r"\b(in|around|from|after|since|before)\s+(\d{4})\b")

AUDIENCE_PATTERNS: List[Tuple[str, Pattern[str]]] = [
    ("children", re.compile(r"\b(?:for\s+)?(?:kids|children|child)\b")),
    ("young adult", re.compile(r"\b(?:for\s+)?(?:teens?|teenagers?|young\s+adults?|ya)\b")),
    ("adult", re.compile(r"\b(?:for\s+)?(?:adults?|grown-ups?|mature)\b")),
]

SHORT_LENGTH_PATTERN = re.compile(r"\b(short|quick|brief|concise|novella)\b")
LONG_LENGTH_PATTERN = re.compile(r"\b(long|lengthy|epic|extensive|saga|trilogy|series)\b")

EASY_PATTERN = re.compile(r"\b(easy|simple|light|accessible|beginner|straightforward|uncomplicated)\b")
COMPLEX_PATTERN = re.compile(r"\b(complex|difficult|challenging|dense|deep|intellectual|advanced|sophisticated|cerebral)\b")

QUALITY_PATTERN = re.compile(r"\b(best|top|highly[\s-]rated|top[\s-]rated)\b")

AWARD_PATTERN = re.compile(
    r"\b(award[\s-]winning|prize[\s-]winning|award|prize|hugo|nebula|pulitzer|booker|newbery|caldecott)\b"
)

MAX_PAGES_FOR_SHORT = 300
RECENT_MIN_YEAR = 2015
CLASSIC_MAX_YEAR = 2000
QUALITY_MIN_RATING = 4.0

# Theme tag -> keywords. Multi-word keywords match as phrases, single words
# must match a whole query word.
THEME_KEYWORDS: Dict[str, List[str]] = {
    # Relationships & emotions
    "friendship": ["friendship", "friends", "companionship", "buddy", "camaraderie"],
    "love": ["love", "romance", "relationship", "romantic", "passion"],
    "family": ["family", "parent", "mother", "father", "sibling", "child", "familial"],
    "betrayal": ["betrayal", "betrayed", "backstab", "treachery", "deception"],
    "loss": ["loss", "grief", "mourning", "bereavement", "death of loved one"],
    "redemption": ["redemption", "redemptive", "second chance", "forgiveness"],
    # Conflict & power
    "war": ["war", "battle", "conflict", "military", "soldier", "combat", "warfare"],
    "politics": ["politics", "political", "government", "power", "corruption", "conspiracy"],
    "revolution": ["revolution", "rebellion", "uprising", "revolt", "resistance"],
    "revenge": ["revenge", "vengeance", "retribution", "payback"],
    "murder": ["murder", "killing", "death", "assassination", "homicide"],
    # Deception & truth
    "lies": ["lies", "lying", "liar", "lie", "dishonesty", "falsehood", "untruth"],
    "deception": ["deception", "deceive", "deceit", "deceiving", "trickery", "fraud", "manipulation"],
    "secrets": ["secrets", "secret", "hidden", "concealed", "mystery"],
    "truth": ["truth", "honesty", "revealing", "uncovering", "expose"],
    # Fantasy & science fiction elements
    "magic": ["magic", "magical", "wizard", "witch", "sorcery", "spell", "enchantment"],
    "dragon": ["dragon", "dragons", "drake", "wyvern"],
    "space": ["space", "galaxy", "planet", "spaceship", "star", "cosmos", "interstellar"],
    "time-travel": ["time travel", "time machine", "temporal", "time loop"],
    "artificial-intelligence": ["artificial intelligence", "a.i", "robot", "android", "cyborg", "machine intelligence", "artificial-intelligence"],
    "dystopia": ["dystopia", "dystopian", "apocalypse", "post-apocalyptic", "end of world"],
    "utopia": ["utopia", "utopian", "perfect society", "ideal world"],
    "parallel-worlds": ["parallel world", "alternate reality", "multiverse", "parallel universe"],
    # Coming of age & identity
    "coming-of-age": ["coming of age", "growing up", "adolescence", "youth", "maturity"],
    "identity": ["identity", "self-discovery", "finding oneself", "who am i"],
    "lgbtq": ["lgbtq", "lgbt", "queer", "gay", "lesbian", "transgender", "bisexual"],
    "race": ["race", "racism", "racial", "discrimination", "prejudice"],
    "gender": ["gender", "feminism", "feminist", "patriarchy", "women's rights"],
    # Social issues
    "mental-health": ["mental health", "depression", "anxiety", "ptsd", "trauma", "therapy"],
    "addiction": ["addiction", "alcoholism", "drug abuse", "substance abuse"],
    "poverty": ["poverty", "poor", "homelessness", "inequality", "class struggle"],
    "immigration": ["immigration", "immigrant", "refugee", "migration", "diaspora"],
    "climate-change": ["climate change", "global warming", "environment", "ecological"],
    # Historical periods
    "victorian": ["victorian", "victorian era", "19th century", "1800s"],
    "medieval": ["medieval", "middle ages", "dark ages", "knights", "castles"],
    "renaissance": ["renaissance", "elizabethan", "tudor"],
    "world-war": ["world war", "wwi", "wwii", "ww1", "ww2", "great war"],
    "ancient": ["ancient", "antiquity", "classical", "roman", "greek"],
    # Adventure & quest
    "survival": ["survival", "survive", "surviving", "wilderness"],
    "exploration": ["exploration", "explore", "discovery", "expedition", "adventure"],
    "quest": ["quest", "journey", "pilgrimage", "odyssey"],
    "heist": ["heist", "robbery", "theft", "con", "caper"],
    # Supernatural
    "vampire": ["vampire", "vampires", "bloodsucker", "undead"],
    "werewolf": ["werewolf", "werewolves", "lycanthrope", "shapeshifter"],
    "ghost": ["ghost", "ghosts", "haunted", "haunting", "spirit", "specter"],
    "demon": ["demon", "demons", "devil", "demonic", "hell"],
    "angel": ["angel", "angels", "angelic", "heaven", "divine"],
    # Mystery & crime
    "detective": ["detective", "investigation", "investigator", "sleuth", "private eye"],
    "serial-killer": ["serial killer", "psychopath", "murderer"],
    "conspiracy": ["conspiracy", "cover-up", "secret society", "illuminati"],
    # Character types
    "female-protagonist": ["female lead", "female protagonist", "strong woman", "heroine", "female character"],
    "male-protagonist": ["male lead", "male protagonist", "hero", "male character"],
    "anti-hero": ["anti-hero", "antihero", "morally gray", "morally ambiguous"],
    "chosen-one": ["chosen one", "prophecy", "destined", "savior"],
    # Religion & philosophy
    "religion": ["religion", "religious", "faith", "spiritual", "god", "deity"],
    "atheism": ["atheism", "atheist", "secular", "non-believer"],
    "existentialism": ["existential", "existentialism", "meaning of life", "absurdism"],
}

# Named period -> (start_year, end_year). "world war i" precedes "world war ii"
# so the more specific name is applied last.
HISTORICAL_PERIODS: Dict[str, Tuple[int, int]] = {
    "ancient": (0, 500),
    "medieval": (500, 1500),
    "renaissance": (1400, 1600),
    "victorian": (1837, 1901),
    "edwardian": (1901, 1910),
    "world war i": (1914, 1918),
    "world war ii": (1939, 1945),
    "cold war": (1947, 1991),
    "modern": (1950, 2000),
    "contemporary": (2000, 2030),
}

STOP_WORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "from", "about", "as", "into", "through", "during",
    "please", "recommend", "suggest", "find", "looking", "want", "need",
    "book", "books", "novel", "novels", "read", "reading", "good", "great", "best",
    "can", "you", "give", "me", "some", "any", "show",
})

# Smaller list used when picking fallback search terms.
FALLBACK_STOP_WORDS = frozenset({"this", "that", "with", "from", "have", "like"})

TOKEN_PATTERN = re.compile(r"[a-z0-9][a-z0-9'-]*")


def contains_phrase(text: str, phrase: str) -> bool:
    """True if `phrase` occurs in `text` on word boundaries (both lower-case)."""
    if not phrase:
        return False
    return re.search(rf"(?<![a-z0-9]){re.escape(phrase)}(?![a-z0-9])", text) is not None


def find_genre(text: str) -> Optional[str]:
    """
    Best genre for a lower-cased text fragment.

    A genre matches when one of its synonyms occurs in the text, or the
    text occurs in one of its synonyms. Synonyms found inside the text beat
    the reverse direction; among those the longest synonym wins, so
    "science fiction" beats "science". Ties go to table order.

    Returns:
        The genre name, or None if nothing matched
    """
    fragment = " ".join(text.split())
    if len(fragment) < 2:
        return None

    best_genre: Optional[str] = None
    best_score = (0, 0)
    for genre, synonyms in GENRE_EXPANSIONS.items():
        for synonym in synonyms:
            if contains_phrase(fragment, synonym):
                score = (1, len(synonym))
            elif contains_phrase(synonym, fragment):
                score = (0, len(fragment))
            else:
                continue
            if score > best_score:
                best_genre, best_score = genre, score
    return best_genre


def query_words(text: str) -> Set[str]:
    """Whitespace-separated words with surrounding punctuation removed."""
    words = {word.strip(string.punctuation) for word in text.split()}
    words.discard("")
    return words


def match_themes(text: str) -> List[str]:
    """Theme tags whose keywords appear in the lower-cased text, in table order."""
    words = query_words(text)
    matched = []
    for theme, keywords in THEME_KEYWORDS.items():
        for keyword in keywords:
            hit = contains_phrase(text, keyword) if " " in keyword else keyword in words
            if hit:
                matched.append(theme)
                break
    return matched

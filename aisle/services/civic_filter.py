"""
Civic Content Filter

Decides whether an external post belongs in a civil political discussion
feed. Posts must be about politics or civic life, must not be hobby or
lifestyle chatter, and must pass language moderation.

Rejection order (first match wins):
1. Critical safety labels on the post or its author
2. Hobby/lifestyle keywords
3. Uncivil language (moderation violation or uncivil keyword)
4. No political/civic keyword
5. Shorter than MIN_CONTENT_LENGTH characters
6. Civility score below MIN_CIVILITY_SCORE
"""

import re

from aisle.services.moderation import moderate_content, ModerationVerdict


MIN_CONTENT_LENGTH = 50
MIN_CIVILITY_SCORE = 40


CIVIC_KEYWORDS = [
    # Core political terms
    "politics", "political", "policy", "policies", "legislation", "legislative",
    "government", "governance", "federal", "state policy", "local policy",
    "public policy", "bipartisan", "partisan",

    # Institutions
    "congress", "senate", "house of representatives", "house", "senator",
    "representative", "congressman", "congresswoman", "legislator",
    "parliament", "parliamentary",

    # Elections & voting
    "election", "elections", "electoral", "vote", "voting", "voter",
    "ballot", "primary", "caucus", "campaign", "candidate",
    "ballot initiative", "referendum", "polling", "turnout",

    # Democracy & civic participation
    "democracy", "democratic", "republic", "civic", "civic engagement",
    "civil discourse", "public discourse", "town hall", "town meeting",
    "constituents", "representation", "public hearing",

    # Constitution & law
    "constitution", "constitutional", "amendment", "bill of rights",
    "civil liberties", "rights", "legal", "law", "regulation",

    # Parties & ideology
    "democrat", "democratic party", "republican", "republican party",
    "progressive", "conservative", "liberal", "moderate",
    "left-wing", "right-wing", "centrist",

    # Judiciary
    "supreme court", "scotus", "court", "courts", "judicial", "judiciary",
    "justice", "judge", "ruling", "verdict", "legal ruling",

    # Healthcare
    "healthcare", "health care", "medicaid", "medicare", "obamacare", "aca",
    "insurance", "medical policy", "reproductive rights", "abortion policy",
    "prescription drug", "pharmaceutical policy",

    # Economy
    "economy", "economic policy", "budget", "deficit", "surplus",
    "tax policy", "taxation", "fiscal policy", "monetary policy",
    "inflation policy", "employment policy", "wages policy", "trade policy",
    "tariff", "sanctions", "economic reform",

    # Immigration
    "immigration", "immigration policy", "border policy", "asylum",
    "refugee policy", "citizenship", "visa policy", "deportation",
    "immigration reform",

    # Environment
    "climate policy", "environmental policy", "energy policy",
    "renewable energy policy", "carbon policy", "emissions",
    "epa", "environmental regulation", "climate legislation",

    # Education
    "education policy", "school policy", "student loan", "student debt",
    "education reform", "curriculum policy", "teacher policy",
    "school board", "education funding",

    # Foreign policy
    "foreign policy", "diplomacy", "diplomatic", "treaty", "nato",
    "defense policy", "military policy", "national security",
    "international relations", "foreign aid",

    # Civil rights
    "civil rights", "voting rights", "discrimination policy",
    "equality", "justice reform", "police reform", "criminal justice",
    "racial justice", "lgbtq rights", "lgbtq policy",

    # Veterans
    "veteran policy", "veterans affairs", "va", "veteran benefits",
    "gi bill", "military service",

    # Housing
    "housing policy", "homelessness", "affordable housing",
    "zoning", "urban policy", "shelter policy",

    # Legislative process
    "bill", "introduced bill", "passed", "vetoed", "override",
    "committee", "hearing", "markup", "floor vote", "cloture",
    "filibuster", "amendment", "resolution",

    # Political commentary
    "political commentary", "political analysis", "policy debate",
    "debate", "discussion", "dialogue", "compromise", "negotiation",
    "agreement", "common ground", "across the aisle",

    # Media & information
    "fact check", "misinformation", "disinformation",
    "media literacy", "political news", "press conference",

    # Local government
    "city council", "mayor", "local government", "municipal",
    "county", "township", "public safety policy", "infrastructure policy",
]

HOBBY_LIFESTYLE_EXCLUSIONS = [
    # Nature & gardening
    "flower", "flowers", "plant", "plants", "garden", "gardening",
    "planting", "botanical", "flora", "bloom", "blooming",

    # Photography & art
    "photography", "photo", "picture", "camera", "lens", "shot",
    "photographer", "photoshoot", "selfie",
    "drawing", "art", "artwork", "illustration", "sketch", "painting",
    "canvas", "artist", "artistic",

    # Pets & animals
    "dog", "dogs", "puppy", "puppies", "cat", "cats", "kitten", "kittens",
    "pet", "pets", "animal", "animals", "bird", "fish", "hamster",
    "rabbit", "guinea pig", "ferret", "reptile",

    # Tech & gaming
    "computer", "tech support", "coding", "programming", "game", "gaming",
    "gamer", "video game", "console", "pc gaming", "minecraft",
    "fortnite", "playstation", "xbox", "nintendo",

    # Creative writing
    "writing prompt", "fiction", "poem", "poetry", "short story",
    "fanfic", "fanfiction", "creative writing",

    # Entertainment & humor
    "meme", "memes", "joke", "jokes", "humor", "funny", "lol",
    "comedy", "comedian",

    # Crafts & hobbies
    "hobby", "hobbies", "sewing", "crafting", "craft", "crochet",
    "knitting", "knit", "cosplay", "diy", "handmade",
    "woodworking", "pottery", "ceramics",

    # Food & cooking
    "food", "recipe", "recipes", "cooking", "baking", "bake",
    "delicious", "yummy", "tasty", "meal", "dinner", "lunch",
    "breakfast", "cuisine", "chef",

    # Personal updates
    "my day", "personal update", "daily life", "morning routine",
    "good morning", "goodnight", "having fun", "weekend vibes",

    # Sports & fitness
    "workout", "gym", "fitness", "exercise", "training",
    "sports team", "soccer", "football game", "basketball game",
    "baseball game", "hockey game",

    # Fashion & beauty
    "fashion", "outfit", "style", "makeup", "beauty", "skincare",
    "hair", "nails", "clothing", "accessories",

    # Travel
    "vacation", "holiday", "trip", "traveling", "tourist",
    "sightseeing", "beach day", "resort",

    # Music
    "concert", "band", "musician", "album", "song", "lyrics",
    "playlist", "music video",

    # General lifestyle
    "lifestyle", "life hack", "self care", "wellness",
    "meditation", "yoga", "zen", "mindfulness",
]

UNCIVIL_KEYWORDS = [
    "hate", "stupid", "idiot", "moron", "trash", "garbage", "scum",
    "destroy", "enemy", "traitor", "brainwashed", "sheep",
    "dumbass", "dumb ass", "loser", "losers", "pathetic", "worthless",
]

CRITICAL_SAFETY_LABELS = {
    "spam",
    "sexual",
    "porn",
    "graphic-media",
    "self-harm",
    "violence",
    "hate",
    "intolerant",
    "rude",
    "threat",
    "author:spam",
    "author:impersonation",
}

# (topic, pattern) pairs; a post may carry several topics
TOPIC_PATTERNS = [
    ("policy", r"\b(policy|policies|legislation|bill)\b"),
    ("bipartisan", r"\b(bipartisan|compromise|agreement|unity|together|across the aisle|both parties|reach across|common ground|meet in the middle)\b"),
    ("civic-engagement", r"\b(civic|citizen|democracy|vote|voting|engagement|show up to vote|constituents)\b"),
    ("congress", r"\b(congress|senate|house|representative|senator|committee hearing|markup|floor vote)\b"),
    ("election", r"\b(election|campaign|ballot|primary|candidate|ballot initiative)\b"),
    ("healthcare", r"\b(healthcare|medicaid|medicare|insurance|medical|health|abortion|reproductive)\b"),
    ("economy", r"\b(economy|budget|deficit|tax|taxes|inflation|jobs|employment|wages|fiscal|trade)\b"),
    ("judiciary", r"\b(supreme court|scotus|judicial|justice|court|ruling)\b"),
    ("immigration", r"\b(immigration|border|asylum|refugee|citizenship|visa)\b"),
    ("environment", r"\b(climate|environment|energy|renewable|carbon|pollution|epa|emissions)\b"),
    ("education", r"\b(education|school|student|loan|debt|university|college|teacher|school board)\b"),
    ("foreign-policy", r"\b(foreign policy|diplomacy|treaty|nato|defense|military|sanctions)\b"),
    ("civil-rights", r"\b(civil rights|discrimination|equality|justice reform|voting rights|lgbtq|racial justice)\b"),
    ("veterans", r"\b(veteran|veterans|va|military service|gi bill)\b"),
    ("homelessness", r"\b(homeless|homelessness|housing|shelter|affordable housing)\b"),
    ("local-government", r"\b(city council|school board|mayor|town hall|local government|municipal|county|township)\b"),
    ("community-issues", r"\b(zoning|water|public safety|infrastructure|community|district maps|public hearing)\b"),
    ("democracy", r"\b(representation|democracy|voting rights|ballot initiative|constituents)\b"),
    ("media-literacy", r"\b(misinformation|disinformation|fact check|sources|media literacy|credibility|verification)\b"),
    ("dialogue", r"\b(dialogue|conversation|debate|discussion|civil discourse|common ground|agree to disagree)\b"),
]


def _count_keywords(text: str, keywords: list[str]) -> int:
    lower_text = text.lower()
    return sum(1 for keyword in keywords if keyword in lower_text)


def contains_hobby_lifestyle_content(text: str) -> bool:
    return _count_keywords(text, HOBBY_LIFESTYLE_EXCLUSIONS) > 0


def contains_political_civic_content(text: str) -> bool:
    return _count_keywords(text, CIVIC_KEYWORDS) > 0


def contains_uncivil_language(text: str) -> bool:
    if moderate_content(text).is_violation:
        return True
    return _count_keywords(text, UNCIVIL_KEYWORDS) > 0


def calculate_civility_score(text: str) -> int:
    """
    Score from 0 (hostile) to 100 (civil), starting from a neutral 50.

    +5 per civic keyword (at most +30), -15 per uncivil keyword, and a
    further 15/30/50 off for a minor/moderate/severe moderation violation.
    """
    score = 50
    score += min(_count_keywords(text, CIVIC_KEYWORDS) * 5, 30)
    score -= _count_keywords(text, UNCIVIL_KEYWORDS) * 15

    result = moderate_content(text)
    if result.is_violation:
        if result.severity == "severe":
            score -= 50
        elif result.severity == "moderate":
            score -= 30
        else:
            score -= 15

    return max(0, min(100, score))


def extract_topics(text: str) -> list[str]:
    lower_text = text.lower()
    topics = [topic for topic, pattern in TOPIC_PATTERNS if re.search(pattern, lower_text)]
    return topics or ["general-politics"]


def extract_safety_labels(post: dict) -> list[str]:
    """
    Collect label values from a post and its author.

    Author labels are prefixed with "author:" so they can be told apart.
    """
    labels = []
    for label in post.get("labels") or []:
        if label.get("val"):
            labels.append(label["val"])

    author = post.get("author") or {}
    for label in author.get("labels") or []:
        if label.get("val"):
            labels.append(f"author:{label['val']}")

    return labels


def has_critical_safety_issues(labels: list[str]) -> bool:
    return any(label.lower() in CRITICAL_SAFETY_LABELS for label in labels)


def review_post(text: str, safety_labels: list[str] | None = None) -> ModerationVerdict:
    """
    Run the full moderation pass over one post.

    Args:
        text: Post text
        safety_labels: Labels from ``extract_safety_labels``

    Returns:
        ModerationVerdict with status "allowed", or "flagged" plus the reason
        of the first filter that rejected the post
    """
    safety_labels = safety_labels or []
    moderation = moderate_content(text)
    civility_score = calculate_civility_score(text)
    topics = extract_topics(text)

    def verdict(reason: str | None) -> ModerationVerdict:
        return ModerationVerdict(
            status="allowed" if reason is None else "flagged",
            reason=reason,
            civility_score=civility_score,
            topics=topics,
            safety_labels=safety_labels,
            moderation=moderation,
        )

    if has_critical_safety_issues(safety_labels):
        return verdict("safety_labels")
    if contains_hobby_lifestyle_content(text):
        return verdict("hobby_lifestyle")
    if contains_uncivil_language(text):
        return verdict("uncivil_language")
    if not contains_political_civic_content(text):
        return verdict("not_political_civic")
    if len(text) < MIN_CONTENT_LENGTH:
        return verdict("too_short")
    if civility_score < MIN_CIVILITY_SCORE:
        return verdict("low_civility_score")
    return verdict(None)

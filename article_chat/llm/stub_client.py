"""
Deterministic Stub Provider

Answers prompts with canned, rule-based output so the whole pipeline runs
without a model server. Planner prompts get a keyword-classified JSON plan,
analysis prompts get a JSON analysis derived from the article text, anything
else gets a fixed sentence chosen by prompt keywords.
"""

import json
import re
from collections import deque
from typing import Deque, List, Dict, Any, Optional

from .base import LLMClient, GenerationResponse

URL_PATTERN = re.compile(r'https?://[^\s,;)"\']+')
WORD_PATTERN = re.compile(r"[A-Za-z][A-Za-z'-]+")

# Only the most recent prompts are kept
MAX_RECORDED_CALLS = 100

# Checked in order, first match wins
INTENT_RULES = [
    ("FIND_COMMON_ENTITIES", ("common entit", "entities", "most mentioned")),
    ("COMPARE_TONE", ("tone", "writing style")),
    ("COMPARE_POSITIVITY", ("more positive", "positivity", "less negative")),
    ("COMPARE_ALL_SENTIMENT", ("sentiment across", "compare the sentiment", "compare sentiment")),
    ("COMPARE_MULTIPLE", ("compare", "difference between", "differ")),
    ("SENTIMENT", ("sentiment", "positive or negative", "feel about")),
    ("KEYWORDS", ("keyword", "key topics", "main topics")),
    ("SUMMARIZE", ("summar", "tl;dr", "what is this article")),
    ("FIND_BY_TOPIC", ("about", "articles on", "find", "discuss")),
]

STOPWORDS = {
    "the", "a", "an", "and", "or", "of", "on", "in", "to", "for", "is", "are",
    "what", "which", "do", "does", "articles", "article", "about", "find", "me",
    "any", "there", "say", "says", "tell", "discuss", "discussing", "with",
}


class StubLLMClient(LLMClient):
    """Rule-based provider for offline runs and tests."""

    name = "mock"

    def __init__(self, max_recorded_calls: int = MAX_RECORDED_CALLS):
        self.calls: Deque[str] = deque(maxlen=max_recorded_calls)

    def generate_content(self, prompt: str, timeout: Optional[float] = None) -> GenerationResponse:
        self.calls.append(prompt)
        lower_prompt = prompt.lower()

        if "determine the intent" in lower_prompt and "respond in json format" in lower_prompt:
            return GenerationResponse(text=json.dumps(self._plan(prompt)))

        if lower_prompt.startswith("analyze the following news article"):
            return GenerationResponse(text=json.dumps(self._analysis(prompt)))

        if "keywords" in lower_prompt or "key topics" in lower_prompt:
            text = "Key topics: technology, innovation, business strategy, product development"
        elif "sentiment" in lower_prompt or "positivity" in lower_prompt:
            text = "The articles are broadly similar in sentiment; the first is slightly more positive."
        elif "compare" in lower_prompt:
            text = ("When comparing these articles, the main differences lie in their focus areas "
                    "and the perspectives they present.")
        elif "summar" in lower_prompt or "explain what each one reports" in lower_prompt:
            text = ("The articles discuss the main topic and provide key insights about "
                    "the subject matter [1].")
        else:
            text = f"Mock response to: {prompt[:50]}"

        return GenerationResponse(text=text)

    def _plan(self, prompt: str) -> Dict[str, Any]:
        query = prompt.rsplit("USER QUERY:", 1)[-1].strip()
        lower_query = query.lower()

        targets = [url.rstrip('.?!') for url in URL_PATTERN.findall(query)]
        query_text = URL_PATTERN.sub(" ", lower_query)

        intent = "UNKNOWN"
        for candidate, phrases in INTENT_RULES:
            if any(phrase in query_text for phrase in phrases):
                intent = candidate
                break

        parameters = []
        if " about " in f" {query_text} ":
            tail = f" {query_text} ".split(" about ", 1)[1]
            parameters = [w for w in WORD_PATTERN.findall(tail) if w not in STOPWORDS]

        return {"intent": intent, "targets": targets, "parameters": parameters}

    def _analysis(self, prompt: str) -> Dict[str, Any]:
        title_match = re.search(r"^TITLE: (.*)$", prompt, re.MULTILINE)
        title = title_match.group(1).strip() if title_match else ""
        body = prompt.split("ARTICLE:", 1)[-1].strip()

        sentences = [s.strip() for s in re.split(r'(?<=[.!?])\s+', body) if s.strip()]

        entities: List[str] = []
        for word in WORD_PATTERN.findall(f"{title} {body}"):
            if word[0].isupper() and word.lower() not in STOPWORDS and word not in entities:
                entities.append(word)

        topics: List[str] = []
        for word in WORD_PATTERN.findall(title.lower()):
            if len(word) > 4 and word not in STOPWORDS and word not in topics:
                topics.append(word)

        return {
            "headline": title or (sentences[0] if sentences else ""),
            "key_points": sentences[:3],
            "sentiment": "0.00 (neutral)",
            "entities": entities[:5],
            "topics": topics[:5],
        }

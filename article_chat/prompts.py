"""
Prompt Factory

Builds every prompt sent to the generative provider: the planner prompt, the
ingestion analysis prompt and the per-intent synthesis prompts.
"""

from typing import List, Optional, Sequence

from .models import Article, Intent


INTENT_DESCRIPTIONS = {
    Intent.SUMMARIZE: "Summarize one specific article.",
    Intent.KEYWORDS: "Extract the keywords or main topics of one specific article.",
    Intent.SENTIMENT: "Report the sentiment of one or more specific articles.",
    Intent.COMPARE_TONE: "Compare the tone and writing style of two or more articles.",
    Intent.FIND_BY_TOPIC: "Find articles that discuss a topic and explain what they say.",
    Intent.COMPARE_POSITIVITY: "Decide which of several articles is more positive about a topic.",
    Intent.FIND_COMMON_ENTITIES: "List the most commonly mentioned entities (people, organizations, places).",
    Intent.COMPARE_ALL_SENTIMENT: "Compare the sentiment of all articles about a topic.",
    Intent.COMPARE_MULTIPLE: "Compare several articles across content, perspective and conclusions.",
    Intent.UNKNOWN: "Anything that fits none of the intents above.",
}

# Analysis prompts are truncated to keep requests within small context windows
MAX_ANALYSIS_CHARS = 8000


def format_articles(articles: Sequence[Article], include_sentiment: bool = False) -> str:
    """
    Render articles as a numbered block for inclusion in a prompt.

    Args:
        articles: Articles to render
        include_sentiment: Add each article's stored sentiment label

    Returns:
        Formatted text, one paragraph per article
    """
    parts = []
    for i, article in enumerate(articles, 1):
        lines = [f"Article {i}: {article.title or article.url}", f"URL: {article.url}"]
        if include_sentiment and article.sentiment:
            lines.append(f"Sentiment: {article.sentiment}")
        lines.append(f"Summary: {article.summary or article.excerpt or 'No summary available.'}")
        parts.append("\n".join(lines))
    return "\n\n".join(parts)


def planner_prompt(query: str, articles: Sequence[Article]) -> str:
    """
    Build the prompt that turns a user query into a JSON plan.

    Args:
        query: The user's question
        articles: Context articles the plan may target

    Returns:
        Complete planner prompt

    Raises:
        ValueError: If the query is empty
    """
    if not query or not query.strip():
        raise ValueError("query cannot be empty")

    intents = "\n".join(f"- {intent.value}: {description}" for intent, description in INTENT_DESCRIPTIONS.items())

    if articles:
        context = "\n".join(f"- {a.title or 'Untitled'} ({a.url}): {a.summary or a.excerpt}" for a in articles)
    else:
        context = "- No articles are available."

    return f"""You are the planning component of a news article assistant.
Determine the intent of the user's query and the articles it refers to.

AVAILABLE INTENTS:
{intents}

AVAILABLE ARTICLES:
{context}

RULES:
1. "targets" contains the exact URLs of the articles the query refers to, copied from the list above
2. "parameters" contains topics or search terms mentioned in the query
3. Leave "targets" empty when the query names no specific article
4. Use UNKNOWN when no intent fits

Respond in JSON format only, with no other text:
{{"intent": "<INTENT>", "targets": ["<url>", ...], "parameters": ["<term>", ...]}}

USER QUERY: {query.strip()}"""


def analysis_prompt(title: str, text: str) -> str:
    """Build the single-call ingestion analysis prompt."""
    content = text[:MAX_ANALYSIS_CHARS]
    return f"""Analyze the following news article.

Return a JSON object with exactly these fields:
- "headline": a one-sentence headline summarizing the article
- "key_points": a list of 3 to 5 short key points
- "sentiment": a sentiment score between -1.0 and 1.0 followed by a label, e.g. "0.40 (positive)"
- "entities": a list of the people, organizations and places mentioned
- "topics": a list of 3 to 5 short topic keywords

Respond with the JSON object only.

TITLE: {title}

ARTICLE:
{content}"""


def keywords_prompt(title: str, summary: str) -> str:
    return f"""Extract the most important keywords and key topics from this article.
Return them as a comma-separated list.

TITLE: {title}
SUMMARY: {summary}"""


def find_topic_prompt(topic: str, articles: Sequence[Article]) -> str:
    return f"""The user wants to know what the articles below say about "{topic}".
Using ONLY these articles, explain what each one reports about the topic and cite
the article numbers in brackets, e.g. [1].

{format_articles(articles)}"""


def compare_positivity_prompt(articles: Sequence[Article], topic: Optional[str] = None) -> str:
    about = f' about "{topic}"' if topic else ""
    return f"""Compare the positivity and sentiment of these articles{about}.
Decide which article is more positive, explain why, and point out the specific
language that shows each article's attitude.

{format_articles(articles, include_sentiment=True)}"""


def compare_tone_prompt(articles: Sequence[Article]) -> str:
    return f"""Compare the tone and writing style of these articles.
Identify key differences in tone, formality, perspective and overall approach.
Provide specific examples from the summaries.

{format_articles(articles)}"""


def compare_multiple_prompt(articles: Sequence[Article], question: str = "") -> str:
    focus = f"\nThe user asked: {question}\n" if question else ""
    return f"""Compare the following {len(articles)} articles.
Describe what they agree on, where they differ in content and perspective, and
what conclusions each reaches.
{focus}
{format_articles(articles)}"""


def compare_all_sentiment_prompt(topic: str, sentiment_lines: List[str]) -> str:
    about = f' about "{topic}"' if topic else ""
    listing = "\n".join(sentiment_lines)
    return f"""Below are sentiment readings for several articles{about}.
Compare the sentiment across the articles, identify the overall trend and
call out the most positive and most negative coverage.

{listing}"""

"""OpenAI-assisted selection of cards for free-practice sessions."""

from __future__ import annotations

import json
import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Mapping, Sequence

from openai import AsyncOpenAI

from srs_engine.srs.models import (
    CardStatus,
    Item,
    ItemKey,
    ItemSchedulingState,
    Rating,
    ReviewLogEntry,
)


LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_CARDS = 30


def build_openai_client(api_key: str) -> AsyncOpenAI:
    """Create a configured AsyncOpenAI client."""
    return AsyncOpenAI(api_key=api_key)


def extract_output_text(response: object) -> str:
    """Best-effort extraction of text from an OpenAI Responses result."""
    output_text = getattr(response, "output_text", None)
    if isinstance(output_text, str) and output_text.strip():
        return output_text

    collected: List[str] = []
    for item in getattr(response, "output", None) or []:
        for part in getattr(item, "content", None) or []:
            if getattr(part, "type", None) == "output_text":
                text = getattr(part, "text", None)
                if text:
                    collected.append(str(text))
    return "\n".join(collected)


class PracticeCurator:
    """Ask a language model to pick and order cards for a free-practice session.

    The model sees every card with its status, last rating, interval and full
    rating history, and answers with a JSON list of card ids. The result is
    only a ranking: keys that do not match a known card are dropped later by
    the queue builder.
    """

    def __init__(self, client: AsyncOpenAI, model: str, max_cards: int = DEFAULT_MAX_CARDS) -> None:
        self._client = client
        self._model = model
        self._max_cards = max_cards
        self._system_prompt = self._build_system_prompt()

    def _build_system_prompt(self) -> str:
        return (
            "You are an intelligent language learning assistant building a 'Free Practice' flashcard session. "
            "You receive every flashcard of the learner with its progress data and the full history of ratings "
            "('again', 'hard', 'good', 'easy'), oldest first. "
            "Select up to {max_cards} cards, or all of them if there are fewer. "
            "Highest priority: cards that show a pattern of being forgotten (e.g. ['easy', 'easy', 'hard']) and "
            "cards with many recent 'again' or 'hard' ratings. "
            "High priority: cards in 'learning' status with a short interval. "
            "Medium priority: 'new' cards. Low priority: cards consistently rated 'good'. "
            "Lowest priority: mature cards with a long interval or a long run of 'easy' ratings; include only a few. "
            "Respond with JSON {{\"cardIds\": [\"<cardId>\", ...]}} in the order the cards should be shown. "
            "Only use cardId values from the input. Always produce valid JSON without commentary, Markdown, or code fences."
        ).format(max_cards=self._max_cards)

    @staticmethod
    def _describe_cards(
        items: Iterable[Item],
        states: Mapping[ItemKey, ItemSchedulingState],
        history: Sequence[ReviewLogEntry],
    ) -> List[Dict[str, object]]:
        ratings_by_key: Dict[ItemKey, List[str]] = defaultdict(list)
        for entry in history:
            ratings_by_key[entry.item_key].append(entry.rating.value)

        cards: List[Dict[str, object]] = []
        for item in items:
            state = states.get(item.key)
            last_rating = state.last_rating if state else None
            cards.append(
                {
                    "cardId": str(item.key),
                    "front": item.front_text,
                    "status": state.status.value if state else CardStatus.NEW.value,
                    "lastRating": last_rating.value if isinstance(last_rating, Rating) else None,
                    "interval": state.interval if state else 0,
                    "reviewHistory": ratings_by_key.get(item.key, []),
                }
            )
        return cards

    async def select(
        self,
        items: Sequence[Item],
        states: Mapping[ItemKey, ItemSchedulingState],
        history: Sequence[ReviewLogEntry],
    ) -> List[str]:
        """Return the ordered card ids chosen for practice, at most ``max_cards`` of them."""
        if not items:
            return []

        cards = self._describe_cards(items, states, history)
        response = await self._client.responses.create(
            model=self._model,
            input=[
                {"role": "system", "content": self._system_prompt},
                {"role": "user", "content": json.dumps(cards, ensure_ascii=False)},
            ],
        )
        raw_text = extract_output_text(response).strip()
        cleaned = self._strip_code_fences(raw_text)
        try:
            payload = json.loads(cleaned)
        except json.JSONDecodeError as exc:
            LOGGER.warning("Failed to parse practice selection response: %s", cleaned)
            raise RuntimeError("Practice selection returned malformed JSON.") from exc

        raw_ids = payload.get("cardIds") if isinstance(payload, dict) else payload
        if not isinstance(raw_ids, list):
            raise RuntimeError("Practice selection did not contain a list of card ids.")

        selected = [card_id for card_id in raw_ids if isinstance(card_id, str)]
        LOGGER.info("Curator picked %d of %d card(s) for free practice.", len(selected), len(cards))
        return selected[: self._max_cards]

    @staticmethod
    def _strip_code_fences(response_text: str) -> str:
        fenced = response_text.strip()
        if fenced.startswith("```") and fenced.endswith("```"):
            return fenced.split("\n", 1)[-1].rsplit("\n", 1)[0]
        return fenced

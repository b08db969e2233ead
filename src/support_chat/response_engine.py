"""Rule-based reply selection for support conversations.

``respond`` is pure: it reads only its arguments, so identical inputs always
produce an identical reply. Rules are tried in a fixed order and the first
one that matches decides the reply:

1. FAQ match
2. greeting (start of conversation only)
3. gratitude
4. escalation to a human agent (explicit request or too many user turns)
5. contextual fallback
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from support_chat.storage.faq_catalog import distinct_categories
from support_chat.storage.models import FAQEntry

FAQ_CONFIDENCE = 0.9
CONTEXTUAL_CONFIDENCE = 0.6
QUESTION_PREFIX_LEN = 10
GREETING_MAX_HISTORY = 2
ESCALATION_USER_TURNS = 3

GREETING_TOKENS = ("hi", "hello", "hey", "greetings")
GRATITUDE_TOKEN = "thank"
ESCALATION_PHRASES = (
    "speak to human",
    "talk to agent",
    "real person",
    "representative",
    "manager",
    "complaint",
)

REASON_USER_REQUESTED = "User requested human agent"
REASON_UNRESOLVED = "Unable to resolve query after multiple attempts"

GREETING_REPLY = (
    "Hello! I am your AI customer support assistant. How can I help you today? "
    "You can ask me about our products, services, policies, or any other questions you might have."
)
GRATITUDE_REPLY = "You're welcome! Is there anything else I can help you with?"
ESCALATION_REPLY = (
    "I understand you need additional assistance. I'm escalating your query to a human agent "
    "who will be with you shortly. A support representative will reach out to you via email "
    "within 24 hours. Is there anything else I can help with in the meantime?"
)

CONTEXTUAL_BUCKETS: tuple[tuple[tuple[str, ...], str], ...] = (
    (
        ("price", "cost", "pay"),
        "I'd be happy to help with pricing information. Could you please specify which product "
        "or service you're interested in? You can also visit our pricing page for detailed information.",
    ),
    (
        ("refund", "return"),
        "I can assist with refund and return inquiries. Our return policy allows returns within "
        "30 days of purchase. Could you provide your order number so I can look into this further?",
    ),
    (
        ("shipping", "delivery"),
        "For shipping inquiries, standard delivery typically takes 5-7 business days. Express "
        "shipping is available for 2-3 business days. Would you like to know about a specific "
        "order's shipping status?",
    ),
    (
        ("account", "login"),
        "I can help with account-related issues. Are you having trouble logging in, or do you "
        "need to update your account information? Please provide more details.",
    ),
)


@dataclass(frozen=True)
class FaqMetadata:
    matched_faq_id: str
    confidence: float = FAQ_CONFIDENCE
    kind = "faq"

    def to_dict(self) -> dict:
        return {"matched_faq_id": self.matched_faq_id, "confidence": self.confidence}


@dataclass(frozen=True)
class GreetingMetadata:
    kind = "greeting"

    def to_dict(self) -> dict:
        return {"type": "greeting"}


@dataclass(frozen=True)
class GratitudeMetadata:
    kind = "gratitude"

    def to_dict(self) -> dict:
        return {"type": "gratitude"}


@dataclass(frozen=True)
class EscalationMetadata:
    escalation_triggered: bool = True
    kind = "escalation"

    def to_dict(self) -> dict:
        return {"escalation_triggered": self.escalation_triggered}


@dataclass(frozen=True)
class ContextualMetadata:
    confidence: float = CONTEXTUAL_CONFIDENCE
    kind = "contextual"

    def to_dict(self) -> dict:
        return {"type": "contextual", "confidence": self.confidence}


ReplyMetadata = FaqMetadata | GreetingMetadata | GratitudeMetadata | EscalationMetadata | ContextualMetadata


@dataclass(frozen=True)
class EngineReply:
    content: str
    metadata: ReplyMetadata
    should_escalate: bool = False
    escalation_reason: str | None = None


def respond(message: str, history: Sequence[dict], faqs: Iterable[FAQEntry]) -> EngineReply:
    """Pick the reply for ``message``.

    ``history`` is the ordered transcript of the session as ``{"role", "content"}``
    dicts and already contains ``message`` as its last user entry.
    """
    faqs = list(faqs)
    lower_message = message.lower()

    matched = find_faq(lower_message, faqs)
    if matched is not None:
        return EngineReply(content=matched.answer, metadata=FaqMetadata(matched_faq_id=matched.id))

    if _contains_any(lower_message, GREETING_TOKENS) and len(history) <= GREETING_MAX_HISTORY:
        return EngineReply(content=GREETING_REPLY, metadata=GreetingMetadata())

    if GRATITUDE_TOKEN in lower_message:
        return EngineReply(content=GRATITUDE_REPLY, metadata=GratitudeMetadata())

    by_keyword = _contains_any(lower_message, ESCALATION_PHRASES)
    by_volume = count_user_turns(history) >= ESCALATION_USER_TURNS
    if by_keyword or by_volume:
        return EngineReply(
            content=ESCALATION_REPLY,
            metadata=EscalationMetadata(),
            should_escalate=True,
            escalation_reason=REASON_USER_REQUESTED if by_keyword else REASON_UNRESOLVED,
        )

    return EngineReply(
        content=contextual_reply(lower_message, faqs),
        metadata=ContextualMetadata(),
    )


def find_faq(lower_message: str, faqs: Iterable[FAQEntry]) -> FAQEntry | None:
    for faq in faqs:
        question = faq.question.lower()
        if lower_message in question or question[:QUESTION_PREFIX_LEN] in lower_message:
            return faq
        if any(keyword.lower() in lower_message for keyword in faq.keywords):
            return faq
    return None


def count_user_turns(history: Sequence[dict]) -> int:
    return sum(1 for entry in history if entry.get("role") == "user")


def contextual_reply(lower_message: str, faqs: Sequence[FAQEntry]) -> str:
    for triggers, reply in CONTEXTUAL_BUCKETS:
        if _contains_any(lower_message, triggers):
            return reply

    categories = ", ".join(distinct_categories(list(faqs)))
    return (
        "I'm not sure I fully understand your question. "
        f"I can help you with topics like: {categories}. "
        "Could you please rephrase your question or ask about one of these topics?"
    )


def _contains_any(text: str, needles: Iterable[str]) -> bool:
    return any(needle in text for needle in needles)

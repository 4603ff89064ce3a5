"""
Complaint classifier.

Uses instructor to get a typed ComplaintClassification for a customer
complaint. The category drives compensation-policy lookup in escalation.
"""

import logging
from typing import Literal, Optional

from pydantic import BaseModel, Field

from .. import config, llm_client

logger = logging.getLogger(__name__)

ComplaintCategory = Literal[
    "food_quality",
    "wrong_item",
    "delivery_delay",
    "service_quality",
    "damaged_item",
    "pricing_error",
    "staff_behavior",
    "other",
]


class ComplaintClassification(BaseModel):
    category: ComplaintCategory = Field(description="Complaint category")
    confidence: float = Field(ge=0, le=1, description="Confidence in the category, 0-1")
    suggested_response: str = Field(description="Short apology to the customer in Mongolian")


def classify_complaint(complaint_text: str, model: str = None) -> Optional[ComplaintClassification]:
    """Classify a complaint; None when OpenAI is off, the text is blank, or the call fails."""
    if not llm_client.is_openai_configured():
        return None
    if not complaint_text or not complaint_text.strip():
        return None

    prompt = f"""Classify this customer complaint sent to an online store or restaurant.

Complaint: "{complaint_text.strip()}"

Categories:
- food_quality: food was cold, stale, tasted wrong
- wrong_item: received a different item than ordered
- delivery_delay: delivery late or never arrived
- service_quality: slow or unhelpful service
- damaged_item: item or packaging broken
- pricing_error: charged the wrong amount
- staff_behavior: rude or careless staff
- other: anything else

Return the category, your confidence (0-1) and a one-sentence apology in Mongolian.
"""

    try:
        client = llm_client.get_instructor_client()
        return client.chat.completions.create(
            model=model or config.OPENAI_MODEL,
            response_model=ComplaintClassification,
            messages=[{"role": "user", "content": prompt}],
        )
    except Exception as e:
        logger.error("Complaint classification failed: %s", e)
        return None

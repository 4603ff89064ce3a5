"""
LLM Response Tiers
==================

generate_ai_response() tries three tiers and returns the first that
produces text:

1. Contextual responder: the recent history plus product/order facts go
   to the chat model for a natural multi-turn answer.
2. Recommendation writer: a single-turn JSON call that writes a short
   product recommendation (product intents with products only).
3. Deterministic template from responses.generate_response().

Tiers 1 and 2 return None when OpenAI is not configured or the call
fails, so the template tier always answers.
"""

import logging
from typing import Any, Dict, List, Optional

from .. import llm_client
from ..services.helpers import format_price
from .escalation import compensation_label
from .responses import generate_response

logger = logging.getLogger(__name__)

RECOMMENDATION_INTENTS = ("product_search", "product_suggestions")

BASE_PROMPT = """Та "{store_name}" ecommerce дэлгүүрийн чатбот.
Монгол хэлээр хариулна. Богино, эелдэг, мэргэжлийн.
Зөвхөн өгөгдсөн мэдээллийг ашиглана, зохиож болохгүй.

ХЭМЖЭЭ/РАЗМЕР ДҮРЭМ:
- Бүтээгдэхүүний мэдээлэлд "size_fit" гэсэн хэмжээний зөвлөмж байвал тэр мэдээллийг ашиглаж тохирох размер зөвлөнө.
- Хэрэглэгч жин, өндөр, биеийн хэмжээ хэлсэн бол size_fit мэдээлэлд тулгуурлан тодорхой размер санал болго.
- size_fit мэдээлэл байхгүй бол байгаа размеруудыг жагсааж, "менежерээс лавлана уу" гэж нэм.
- 100% баталгаа өгөхгүй.
Үнийг ₮ тэмдэгтэйгээр бич."""

RECOMMENDATION_PROMPT = """Та онлайн дэлгүүрийн борлуулалтын зөвлөх.
Хэрэглэгчийн хайлтад тохирох бүтээгдэхүүнүүдийг Монгол хэлээр богино, урам өгсөн байдлаар санал болго.
Зөвхөн өгөгдсөн бүтээгдэхүүн, үнийг ашигла. Үнийг ₮ тэмдэгтэйгээр бич.
JSON буцаа: {"message": "<хэрэглэгчид илгээх текст>"}"""


def build_system_prompt(
    store_name: str,
    products: List[Dict[str, Any]],
    orders: List[Dict[str, Any]],
    return_policy: Optional[str] = None,
    vouchers: Optional[List[Dict[str, Any]]] = None,
) -> str:
    prompt = BASE_PROMPT.format(store_name=store_name)

    if products:
        prompt += "\n\nБүтээгдэхүүнүүд:\n"
        for i, p in enumerate(products, start=1):
            prompt += f"{i}. {p['name']} | {format_price(p.get('base_price'))}"
            if p.get("description"):
                prompt += f" | {p['description'][:150]}"
            prompt += "\n"
            for key, value in (p.get("faqs") or {}).items():
                if value:
                    prompt += f"   {key}: {value}\n"

    if orders:
        prompt += "\n\nЗахиалгууд:\n"
        for o in orders:
            prompt += f"• {o['order_number']} | {o['status']} | {format_price(o.get('total_amount'))}\n"

    if return_policy:
        prompt += (
            f"\n\nБУЦААЛТ/СОЛИЛТЫН БОДЛОГО:\n{return_policy}\n"
            "Хэрэглэгч буцаалт, солилтын тухай асуувал энэ бодлогоор хариулна.\n"
        )
    else:
        prompt += '\nБуцаалт/солилтын тухай асуувал "менежерээс лавлана уу" гэж хариулна.\n'

    if vouchers:
        prompt += "\n\nХӨНГӨЛӨЛТИЙН ЭРХ:\nЭнэ харилцагч дараах хөнгөлөлтийн эрхтэй:\n"
        for v in vouchers:
            label = compensation_label(v["compensation_type"], v.get("compensation_value"))
            valid_until = v.get("valid_until")
            until = valid_until.strftime("%Y.%m.%d") if hasattr(valid_until, "strftime") else str(valid_until or "")
            prompt += f"• Код: {v['voucher_code']} | {label} (хүчинтэй: {until} хүртэл)\n"
        prompt += "Захиалга хийх үед энэ хөнгөлөлтийн кодыг ашиглахыг сануулж болно.\n"

    return prompt


def contextual_ai_response(
    history: List[Dict[str, str]],
    current_message: str,
    store_name: str,
    products: List[Dict[str, Any]],
    orders: List[Dict[str, Any]],
    return_policy: Optional[str] = None,
    vouchers: Optional[List[Dict[str, Any]]] = None,
) -> Optional[str]:
    """Multi-turn answer from the chat model, or None."""
    if not llm_client.is_openai_configured() or not history:
        return None

    messages = [{"role": "system", "content": build_system_prompt(store_name, products, orders, return_policy, vouchers)}]
    messages.extend({"role": h["role"], "content": h["content"]} for h in history)
    messages.append({"role": "user", "content": current_message})

    try:
        return llm_client.chat_completion(messages, max_tokens=500)
    except Exception as e:
        logger.error("Contextual responder failed: %s", e)
        return None


def write_recommendation(products: List[Dict[str, Any]], customer_query: str) -> Optional[str]:
    """Single-turn recommendation text for a product list, or None."""
    if not llm_client.is_openai_configured() or not products:
        return None

    lines = [f"Хэрэглэгчийн хайлт: {customer_query}", "", "Бүтээгдэхүүнүүд:"]
    for i, p in enumerate(products, start=1):
        line = f"{i}. {p['name']} | {format_price(p.get('base_price'))}"
        if p.get("description"):
            line += f" | {p['description'][:150]}"
        if p.get("sales_script"):
            line += f" | {p['sales_script']}"
        lines.append(line)

    try:
        result = llm_client.json_completion(RECOMMENDATION_PROMPT, "\n".join(lines), max_tokens=400)
    except Exception as e:
        logger.error("Recommendation writer failed: %s", e)
        return None

    message = result["data"].get("message")
    return message if isinstance(message, str) and message.strip() else None


def generate_ai_response(
    intent: str,
    products: List[Dict[str, Any]],
    orders: List[Dict[str, Any]],
    store_name: str,
    customer_query: str,
    settings: Optional[Dict[str, Any]] = None,
    history: Optional[List[Dict[str, str]]] = None,
    vouchers: Optional[List[Dict[str, Any]]] = None,
) -> str:
    settings = settings or {}

    if history:
        text = contextual_ai_response(
            history,
            customer_query,
            store_name,
            products,
            orders,
            return_policy=settings.get("return_policy"),
            vouchers=vouchers,
        )
        if text:
            return text

    if intent in RECOMMENDATION_INTENTS and products:
        text = write_recommendation(products, customer_query)
        if text:
            return text

    return generate_response(intent, products, orders, store_name, settings)

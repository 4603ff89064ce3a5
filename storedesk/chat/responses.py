"""
Deterministic Bot Replies
=========================

Mongolian reply templates for every intent the pipeline can produce. This is
the last response tier: it needs no network access and always returns text,
so the widget keeps answering when the LLM is not configured or fails.

Products are passed as dicts (see search.product_to_dict) and orders as
dicts from search.order_to_dict. Remembered products only carry
{id, name, base_price}; every template tolerates the missing keys.

Store settings used:
--------------------
- welcome_message: Replaces the greeting text when set
- show_prices: Hide prices from product lists when False (default True)
- return_policy: Quoted in the return/exchange reply
"""

from typing import Any, Dict, List, Optional

from ..services.helpers import format_price

__all__ = [
    "ORDER_STATUS_MAP",
    "format_price",
    "generate_response",
    "product_detail_response",
    "price_info_response",
]


ORDER_STATUS_MAP = {
    "pending": "⏳ Хүлээгдэж байна",
    "confirmed": "✅ Баталгаажсан",
    "processing": "📦 Бэлтгэж байна",
    "shipped": "🚚 Илгээсэн",
    "delivered": "✅ Хүргэгдсэн",
    "cancelled": "❌ Цуцлагдсан",
}

MENU_TEXT = (
    "Уучлаарай, таны асуултыг бүрэн ойлгосонгүй. 🤔\n\n"
    "Та доорх сэдвүүдээс сонгоно уу:\n"
    "• 📦 Бүтээгдэхүүн хайх\n"
    "• 📋 Захиалга шалгах\n"
    "• 🚚 Хүргэлтийн мэдээлэл\n"
    "• 💳 Төлбөрийн мэдээлэл\n"
    "• 📏 Размерийн зөвлөгөө\n"
    "• 💬 Менежертэй холбогдох\n\n"
    "Эсвэл асуултаа дахин бичнэ үү!"
)

HELP_TEXT = (
    "Баярлалаа мессеж бичсэнд! 😊\n\n"
    "Би танд дараах зүйлсээр тусалж чадна:\n"
    "• 📦 Бүтээгдэхүүний мэдээлэл\n"
    "• 📋 Захиалгын статус\n"
    "• 🚚 Хүргэлтийн мэдээлэл\n"
    "• 💳 Төлбөрийн мэдээлэл\n"
    "• 📏 Размерийн зөвлөгөө\n\n"
    "Та юуны талаар мэдмээр байна?"
)

PAYMENT_TEXT = (
    "Төлбөрийн мэдээлэл:\n\n"
    "💳 **Бид дараах төлбөрийн хэлбэрүүдийг хүлээн авна:**\n"
    "• QPay - QR код уншуулж төлөх\n"
    "• Дансаар шилжүүлэг\n"
    "• Бэлнээр (хүргэлтийн үед)\n\n"
    "Төлбөрийн талаар нэмэлт асуулт байвал бичнэ үү."
)

SHIPPING_TEXT = (
    "Хүргэлтийн мэдээлэл:\n\n"
    "🚚 **Хүргэлтийн нөхцөл:**\n"
    "• Улаанбаатар хот: 1-2 ажлын өдөр\n"
    "• Хөдөө орон нутаг: 3-5 ажлын өдөр\n"
    "• Хүргэлтийн төлбөр захиалгын дүнгээс хамаарна\n\n"
    "Та хаягаа бичвэл бид хүргэлтийн төлбөрийг тооцоолж хэлж өгье."
)

SIZE_CHART_TEXT = (
    "📏 **Размерийн мэдээлэл:**\n\n"
    "• S - Жижиг (36-38)\n"
    "• M - Дунд (38-40)\n"
    "• L - Том (40-42)\n"
    "• XL - Маш том (42-44)\n"
    "• XXL - Нэмэлт том (44-46)\n\n"
    "Тодорхой бүтээгдэхүүний размерийн хүснэгтийг авмаар бол бүтээгдэхүүний нэрийг бичнэ үү."
)


def _truncate(text: str, limit: int) -> str:
    return text[:limit] + "..." if len(text) > limit else text


def _product_list(
    header: str,
    products: List[Dict[str, Any]],
    show_prices: bool,
    footer: str,
    desc_limit: int = 80,
    with_script: bool = False,
) -> str:
    lines = [header, ""]
    for i, p in enumerate(products, start=1):
        lines.append(f"{i}. **{p['name']}**")
        if show_prices:
            lines.append(f"   💰 {format_price(p.get('base_price'))}")
        if p.get("description"):
            lines.append(f"   📝 {_truncate(p['description'], desc_limit)}")
        if with_script and p.get("sales_script"):
            lines.append(f"   ✨ {p['sales_script']}")
        lines.append("")
    lines.append(footer)
    return "\n".join(lines)


def _format_order_date(value) -> str:
    if value is None:
        return ""
    if hasattr(value, "strftime"):
        return value.strftime("%Y.%m.%d")
    return str(value)[:10]


def _faq_lines(products: List[Dict[str, Any]], key: str) -> List[str]:
    lines = []
    for p in products:
        answer = (p.get("faqs") or {}).get(key)
        if answer:
            lines.append(f"• **{p['name']}**: {answer}")
    return lines


def generate_response(
    intent: str,
    products: List[Dict[str, Any]],
    orders: List[Dict[str, Any]],
    store_name: str,
    settings: Optional[Dict[str, Any]] = None,
) -> str:
    """Render the template reply for an intent."""
    settings = settings or {}
    show_prices = settings.get("show_prices") is not False

    if intent == "greeting":
        return settings.get("welcome_message") or (
            f"Сайн байна уу! 😊 {store_name}-д тавтай морил. Танд юугаар туслах вэ?\n\n"
            "Би танд бүтээгдэхүүний мэдээлэл, захиалгын статус, хүргэлтийн мэдээлэл "
            "зэргийг хэлж өгөх боломжтой."
        )

    if intent == "thanks":
        return "Баярлалаа! 🙏 Бусад асуулт байвал чөлөөтэй бичээрэй. Бид үргэлж тусалхад бэлэн!"

    if intent == "product_search":
        if not products:
            return (
                "Уучлаарай, таны хайсан бүтээгдэхүүн одоогоор олдсонгүй. 😔\n\n"
                'Та бүтээгдэхүүний нэр эсвэл төрлөөр хайж үзнэ үү. Жишээ нь: "гутал", "хувцас", "цүнх"'
            )
        return _product_list(
            "Танд тохирох бүтээгдэхүүнүүд:",
            products,
            show_prices,
            "Аль бүтээгдэхүүний талаар дэлгэрэнгүй мэдээлэл авмаар байна?",
            with_script=True,
        )

    if intent == "order_status":
        if not orders:
            return (
                "Уучлаарай, захиалгын мэдээлэл олдсонгүй. 📦\n\n"
                "Захиалгын дугаараа оруулна уу, эсвэл бид танд тусалж мэдээлэл шалгах боломжтой."
            )
        lines = ["Таны захиалгын мэдээлэл:", ""]
        for o in orders:
            lines.append(f"📋 **{o['order_number']}**")
            lines.append(f"   Статус: {ORDER_STATUS_MAP.get(o['status'], o['status'])}")
            lines.append(f"   Дүн: {format_price(o.get('total_amount'))}")
            if o.get("tracking_number"):
                lines.append(f"   Трэкинг: {o['tracking_number']}")
            lines.append(f"   Огноо: {_format_order_date(o.get('created_at'))}")
            lines.append("")
        return "\n".join(lines)

    if intent == "complaint":
        return (
            "Уучлаарай таны санал хүсэлтийг хүлээн авлаа. 🙏\n\n"
            "Бидний менежер тантай холбогдож асуудлыг шийдвэрлэнэ. Та утасны дугаараа "
            "үлдээнэ үү, эсвэл бид энэ чатаар дамжуулан тусалъя.\n\n"
            "Таны сэтгэл ханамж бидний хувьд маш чухал!"
        )

    if intent in ("return_exchange", "warranty_info"):
        if settings.get("return_policy"):
            return (
                f"🔄 **Буцаалт/Солилтын бодлого:**\n\n{settings['return_policy']}\n\n"
                "Нэмэлт асуулт байвал бичнэ үү!"
            )
        return (
            "🔄 Буцаалт/солилтын талаар менежерээс лавлана уу.\n\n"
            "Манай менежер тантай холбогдож дэлгэрэнгүй мэдээлэл өгнө. Та утасны дугаараа үлдээнэ үү!"
        )

    if intent == "size_info":
        if products:
            fit_lines = _faq_lines(products, "size_fit")
            if fit_lines:
                return "📏 **Размерийн зөвлөгөө:**\n\n" + "\n".join(fit_lines) + (
                    "\n\nЯг тохирохыг баталгаажуулахын тулд манай менежерээс лавлана уу."
                )
            return _product_list(
                "📏 **Размерийн мэдээлэл:**\n\nТаны биеийн хэмжээнд тулгуурлан манай бүтээгдэхүүнүүд:",
                products,
                show_prices,
                "Тодорхой бүтээгдэхүүний размерийн талаар дэлгэрэнгүй асуувал бичнэ үү!",
                desc_limit=150,
            )
        return SIZE_CHART_TEXT

    if intent in ("payment", "payment_info"):
        return PAYMENT_TEXT

    if intent in ("shipping", "delivery_info"):
        return SHIPPING_TEXT

    if intent == "order_info":
        names = ", ".join(p["name"] for p in products[:3])
        target = f" ({names})" if names else ""
        return (
            f"🛒 Захиалга өгөх бол бүтээгдэхүүний{target} дугаарыг эсвэл \"авъя\" гэж бичнэ үү.\n\n"
            "Дараа нь хувилбар, хүргэлтийн хаяг, утасны дугаараа бичихэд л болно."
        )

    if intent == "material_info":
        lines = _faq_lines(products, "material")
        if lines:
            return "🧵 **Материалын мэдээлэл:**\n\n" + "\n".join(lines)
        return _product_list(
            "🧵 **Материалын мэдээлэл:**",
            [p for p in products if p.get("description")] or products,
            False,
            "Дэлгэрэнгүй мэдээллийг манай менежерээс лавлана уу.",
            desc_limit=150,
        )

    if intent == "stock_info":
        lines = ["📦 **Нөөцийн мэдээлэл:**", ""]
        for p in products:
            variants = p.get("variants") or []
            in_stock = [v for v in variants if (v.get("stock_quantity") or 0) > 0]
            if not variants:
                lines.append(f"• **{p['name']}**: Менежерээс лавлана уу")
            elif in_stock:
                labels = ", ".join(
                    "/".join(x for x in (v.get("size"), v.get("color")) if x) or "Үндсэн"
                    for v in in_stock
                )
                lines.append(f"• **{p['name']}**: ✅ Бэлэн ({labels})")
            else:
                lines.append(f"• **{p['name']}**: ❌ Дууссан")
        return "\n".join(lines)

    if intent == "detail_info":
        return _product_list(
            "ℹ️ **Дэлгэрэнгүй мэдээлэл:**",
            products,
            show_prices,
            "Захиалах бол бичнэ үү!",
            desc_limit=300,
            with_script=True,
        )

    if intent == "product_suggestions":
        return _product_list(
            "Уучлаарай, таны хайсан бүтээгдэхүүн олдсонгүй. Гэхдээ манай дэлгүүрт дараах бүтээгдэхүүнүүд байна:",
            products,
            show_prices,
            "Аль бүтээгдэхүүний талаар дэлгэрэнгүй мэдмээр байна?",
        )

    if intent == "product_detail" and products:
        return product_detail_response(products[0])

    if intent == "price_info" and products:
        return price_info_response(products)

    if intent == "low_confidence":
        if products:
            return _product_list(
                "Таны хайлтад тохирох бүтээгдэхүүнүүд:",
                products,
                show_prices,
                "Аль бүтээгдэхүүний талаар дэлгэрэнгүй мэдмээр байна?",
            )
        return MENU_TEXT

    if products:
        lines = ["Баярлалаа мессеж бичсэнд! Танд дараах бүтээгдэхүүнүүд байна:", ""]
        for i, p in enumerate(products[:3], start=1):
            lines.append(f"{i}. {p['name']} - {format_price(p.get('base_price'))}")
        lines.append("")
        lines.append("Дэлгэрэнгүй мэдээлэл авмаар бол бичнэ үү!")
        return "\n".join(lines)

    return HELP_TEXT


def product_detail_response(product: Dict[str, Any]) -> str:
    return (
        f"**{product['name']}**\n💰 {format_price(product.get('base_price'))}\n\n"
        "Энэ бүтээгдэхүүнийг захиалмаар байвал бичнэ үү!"
    )


def price_info_response(products: List[Dict[str, Any]]) -> str:
    lines = [f"{i}. {p['name']} — {format_price(p.get('base_price'))}" for i, p in enumerate(products, start=1)]
    return "Үнийн мэдээлэл:\n\n" + "\n".join(lines)

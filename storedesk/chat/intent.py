"""
Intent Classification for the Chat Widget
=========================================

Keyword-based intent classifier for Mongolian (and Latin-typed Mongolian or
English) customer messages. No LLM is involved; the classifier runs on every
message and its result decides which search and which template the bot uses.

Normalisation:
--------------
Customers type Mongolian in Cyrillic, in Latin transliteration, or a mix of
both. normalize_text() folds all of that into one form:

    1. lowercase
    2. Latin digraphs -> Cyrillic (ts->ц, sh->ш, ch->ч, kh->х, zh->ж, yu->ю, ya->я, yo->ё, ye->е)
    3. remaining Latin letters -> Cyrillic
    4. everything except Cyrillic, Arabic, digits and whitespace becomes a space
    5. whitespace collapsed

neutralize_vowels() then removes the vowel distinctions Latin typing cannot
express (э/е, ү/у, ө/о, й/и) so "hemjee" still matches "хэмжээ".

Scoring:
--------
For every keyword of an intent:
    +1    keyword appears as whole words
    +1    keyword appears as whole words after vowel neutralisation
    +0.5  a message word of 4+ letters prefix-matches the keyword
          (skipped for words that already matched some keyword in full)

size_info gets +2 when the message contains a body measurement (60кг, 165cm).
The highest score wins; ties keep the earlier intent. No hits -> "general".
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional

from .. import config


# =============================================================================
# Normalisation
# =============================================================================

LATIN_DIGRAPHS = [
    ("ts", "ц"), ("sh", "ш"), ("ch", "ч"),
    ("kh", "х"), ("zh", "ж"), ("yu", "ю"),
    ("ya", "я"), ("yo", "ё"), ("ye", "е"),
]

LATIN_TO_CYRILLIC = {
    "a": "а", "b": "б", "c": "с", "d": "д", "e": "е", "f": "ф",
    "g": "г", "h": "х", "i": "и", "j": "ж", "k": "к", "l": "л",
    "m": "м", "n": "н", "o": "о", "p": "п", "r": "р", "s": "с",
    "t": "т", "u": "у", "v": "в", "w": "в", "x": "х", "y": "й", "z": "з",
}

_LATIN_LETTER_RE = re.compile(r"[a-z]")
_NON_WORD_RE = re.compile(r"[^\u0400-\u04ff\u0600-\u06ff0-9\s]")
_WHITESPACE_RE = re.compile(r"\s+")

_VOWEL_TABLE = str.maketrans({"э": "е", "ү": "у", "ө": "о", "й": "и"})


def normalize_text(text: str) -> str:
    result = (text or "").lower()
    for latin, cyrillic in LATIN_DIGRAPHS:
        result = result.replace(latin, cyrillic)
    result = _LATIN_LETTER_RE.sub(lambda m: LATIN_TO_CYRILLIC.get(m.group(0), m.group(0)), result)
    result = _NON_WORD_RE.sub(" ", result)
    return _WHITESPACE_RE.sub(" ", result).strip()


def neutralize_vowels(text: str) -> str:
    return text.translate(_VOWEL_TABLE)


# =============================================================================
# Keyword lists
# =============================================================================

INTENT_KEYWORDS: Dict[str, List[str]] = {
    "product_search": [
        "бүтээгдэхүүн", "бараа", "ямар", "хувцас", "гутал", "цүнх",
        "пүүз", "аксессуар", "хайх", "харуулна уу",
        "үнэ", "үнэтэй", "хямд", "шинэ", "сонирхож", "авмаар", "худалдаж",
        "зарна", "зарах", "категори", "төрөл",
        # category names
        "цамц", "даашинз", "өмд", "куртка", "пальто", "хүрэм", "дээл",
        "малгай", "кашемир", "ноолуур", "ноолууран",
        "оймс", "бээлий", "ороолт", "цүнхний",
        "загвар", "загварууд", "өнгө", "өнгөөр", "өнгөтэй",
        "тирко", "турсик", "леевчик", "боолт", "боолтууд",
        "бензэн", "комд", "дотортой", "шилэн", "гуятай", "гуягүй",
        # English
        "product", "products", "item", "buy", "purchase", "shop", "catalog",
        "price", "cheap", "expensive", "new arrival", "show me", "browse",
        "search", "find", "looking for", "want to buy", "how much",
        "available", "in stock",
        # misspellings and informal forms
        "бутээгдэхүүн", "бутээгдхүүн", "бүтээгдхүүн",
        "барааа", "бараагаа",
        "хувцаас", "хувцс",
        "гуталаа", "гутлаа",
        "цунх", "цүнхээ",
        "пууз", "пүүзээ",
        "аксесуар", "аксесор",
        "унэ", "унэтэй", "үнээ",
        "хямдхан", "хямдралтай", "хямдрал", "хямдарсан", "үнэгүй",
        "шинэхэн", "шинээр",
        "авах", "авъя", "авья", "авмааар",
        "хайж", "хайна", "хайлт",
        "харуул", "үзүүл", "үзүүлнэ үү",
        "каталог", "жагсаалт",
        "сонирхож", "сонирхоод", "сонирхох", "сонирхи", "сонирх",
        "авий", "авии", "ави", "авья",
        "авбал", "авлаа", "авсан",
        "захиалъя", "захиалья", "захиалах", "захиалая",
        # availability ("бну" alone is left out, it collides with greetings)
        "байгаа юу", "бий юу", "бга юу", "бгаа юу",
        "байна уу",
        "бга ю", "бгаа", "бга", "бий", "плаж",
        "хэд", "хэдээр",
        "умд", "цамц",
    ],
    "order_status": [
        "захиалга", "хаана", "илгээсэн", "явсан",
        "статус", "трэк", "дугаар", "хэзээ", "захиалсан", "хүлээж",
        "order", "order status", "tracking", "track", "where is", "shipped",
        "delivery status", "when will", "my order", "order number",
        "захялга", "захиалг", "захиалаа", "захиалгаа",
        "ирэхүү", "ирэх үү", "ирэхгүй",
        "илгээсэнүү", "явуулсан",
        "трэкинг",
        "дугаараа", "дугаарыг",
        "хүлээсэн", "хүлээлгэ",
        "шалгах", "шалгана", "шалгамаар",
        "хэзээ ирэх",
        "маргааш ирэх", "өглөө ирэх", "өнөөдөр ирэх", "орой ирэх",
    ],
    "greeting": [
        "сайн байна", "сайн уу", "байна уу", "сайхан",
        "өглөөний мэнд", "мэнд",
        "hello", "hi", "hey", "good morning", "good evening", "greetings",
        "сайн бн", "сн бн уу", "сайн бна", "сайнуу", "сайн уу",
        "юу байна", "сонин юу байна",
        "мэндээ", "мэнд хүргэе",
        "амар", "амрагтай",
        "оройн мэнд",
        "бнау", "бна уу", "сбну", "сайн уу",
        "сн бну", "сн бнуу", "сн бн",
        "сайнбну", "сайнбнуу", "сн уу",
    ],
    "thanks": [
        "баярлалаа", "гайхалтай", "сайхан", "маш сайн", "рахмат", "харин",
        "thanks", "thank", "thank you", "appreciate", "great", "awesome",
        "perfect", "wonderful",
        "баярлаа", "баярласан", "баярлсан", "баярлж", "баяртай",
        "гоё", "гое", "гое байна",
        "сайн байна лээ", "зүгээр", "за",
        "маш гоё", "маш зөв",
        "рахмэт",
        "мерси",
    ],
    "complaint": [
        "гомдол", "асуудал", "муу", "буруу", "алдаа", "сэтгэл ханамжгүй",
        "чанар",
        "complaint", "problem", "issue", "broken", "damaged", "defective",
        "wrong", "bad", "terrible",
        "not working", "disappointed", "unhappy", "angry",
        "гомдоллох", "гомдолтой", "гомдоол",
        "асуудалтай", "асуудал гарсан", "проблем",
        "муухай", "маш муу", "хэрэггүй",
        "буруутай", "буруугаар",
        "алдаатай",
        "чанаргүй", "чанар муу",
        "эвдэрсэн", "гэмтсэн", "гэмтэл",
        "уурласан", "бухимдсан",
        "хариуцлага", "хариуцлагагүй",
    ],
    "return_exchange": [
        "буцаах", "буцаалт", "солих", "солилт", "солиулах",
        "буцаан", "буцааж", "буцаагдах",
        # suffixed forms so they score in full instead of by prefix
        "буцаалтын", "солилтын", "солиулж", "буцаагдсан",
        "хураамж",
        "буцаах бодлого", "буцаах нөхцөл", "буцаалтын нөхцөл",
        "солих боломж", "буцаах боломж",
        "тохирохгүй", "өөр хэмжээ", "өөр өнгө", "өөрчлөх",
        "return", "return policy", "exchange", "refund",
        "can i return", "exchange policy", "swap",
        "want to exchange", "want to return",
        "буцааж болох", "солиулж болох", "буцаалт хийх",
        "буцааж өгөх", "солиулж өгөх",
        "буцааx", "солиулаx",
    ],
    "size_info": [
        "размер", "хэмжээ", "size", "том", "жижиг", "дунд",
        "xl", "xxl",
        "size chart", "size guide", "what size", "fit", "measurement",
        "small", "medium", "large",
        "размераа", "размерийн", "сайз", "сайзаа",
        "хэмжээтэй", "хэмжээний", "хэмжээгээ",
        "томхон", "жижигхэн", "дундаж",
        "тохирох", "тохируулах",
        "урт", "богино", "өргөн", "нарийн",
        # body measurements
        "кг", "см", "kg", "cm",
        "жин", "жинтэй", "өндөр", "өндөртэй",
        "биеийн", "бие", "али нь", "алинийг",
        "тохирно", "тохирох уу", "таарах", "таарна",
    ],
    "payment": [
        "төлбөр", "төлөх", "данс", "шилжүүлэг", "qpay", "карт",
        "бэлэн", "зээл", "хуваах",
        "payment", "pay", "how to pay", "bank transfer", "card", "cash",
        "installment", "credit", "invoice",
        "төлбөрөө", "төлье", "төлъе", "төлсөн",
        "дансаар", "дансруу", "данс руу",
        "шилжүүлэх", "шилжүүлье",
        "картаар", "картаа",
        "бэлнээр", "бэлэнээр",
        "зээлээр", "хуваалаа",
        "хэрхэн төлөх", "яаж төлөх",
        "мөнгө", "мөнгөө",
        "кюпэй", "сошиал пэй", "socialpay", "монпэй", "monpay",
        "хипэй", "hipay", "лэнд", "лизинг", "хуваан төлөх",
        "сторпэй", "storepay",
    ],
    "shipping": [
        "хүргэлт", "хүргэх", "хаяг", "хотод", "хөдөө", "шуудан",
        "унаа", "өдөр", "хоног", "ирэх",
        "shipping", "delivery", "deliver", "address", "express",
        "how long", "when arrive", "ship to", "courier",
        "хүргүүлэх", "хүргээд", "хүргэнэ үү", "хүргэлтийн",
        "хаягаа", "хаягийн", "хаягаар",
        "хотруу", "хот руу",
        "хөдөөрүү", "хөдөө рүү",
        "шууданаар",
        "хэдэн өдөр", "хэдэн хоног",
        "хурдан", "яаралтай хүргэлт",
        "өнөөдөр хүргэх", "маргааш",
        "хургелт", "хургэлт",
        # Ulaanbaatar districts and address parts
        "аймаг", "сум", "дүүрэг", "хороо", "орон нутаг",
        "хан уул", "баянгол", "сүхбаатар", "чингэлтэй", "баянзүрх",
        "сонгинохайрхан", "налайх", "багануур",
        "байр", "баир", "давхар", "тоот", "орц", "хотхон", "хороолол",
    ],
}

# Labels the pipeline produces without a keyword list of their own
KEYWORDLESS_INTENTS = (
    "table_reservation",
    "menu_availability",
    "general",
    "low_confidence",
    "product_suggestions",
    "product_detail",
    "price_info",
    "order_collection",
    "order_created",
    "busy_mode",
)

NORMALIZED_INTENT_KEYWORDS: Dict[str, List[str]] = {
    intent: [normalize_text(kw) for kw in keywords]
    for intent, keywords in INTENT_KEYWORDS.items()
}

MIN_PREFIX_LEN = 4

SIZE_PATTERNS = [
    re.compile(r"\d+\s*кг"),
    re.compile(r"\d+\s*см"),
    re.compile(r"\d+\s*kg", re.IGNORECASE),
    re.compile(r"\d+\s*cm", re.IGNORECASE),
]


# =============================================================================
# Classification
# =============================================================================

@dataclass
class IntentResult:
    intent: str
    confidence: float  # 0 = no match, 1+ = keyword hits


def _prefix_match_word(words: List[str], keyword: str) -> Optional[str]:
    if len(keyword) < MIN_PREFIX_LEN:
        return None
    for word in words:
        if word.startswith(keyword) or (keyword.startswith(word) and len(word) >= MIN_PREFIX_LEN):
            return word
    return None


def has_size_measurement(message: str) -> bool:
    normalized = normalize_text(message)
    return any(p.search(normalized) or p.search(message or "") for p in SIZE_PATTERNS)


def classify_intent_with_confidence(message: str) -> IntentResult:
    normalized = normalize_text(message)
    words = normalized.split(" ")
    padded = f" {normalized} "
    neutral_padded = f" {neutralize_vowels(normalized)} "

    best_intent = "general"
    best_score = 0.0

    for intent, keywords in NORMALIZED_INTENT_KEYWORDS.items():
        score = 0.0
        # "размер" matching in full must not also earn prefix points via "размераа"
        fully_matched = set()
        for kw in keywords:
            if f" {kw} " in padded:
                score += 1
                fully_matched.update(kw.split(" "))
            elif f" {neutralize_vowels(kw)} " in neutral_padded:
                score += 1
                fully_matched.update(neutralize_vowels(kw).split(" "))
            else:
                word = _prefix_match_word(words, kw)
                if word and word not in fully_matched:
                    score += 0.5

        if intent == "size_info" and has_size_measurement(message):
            score += 2

        if score > best_score:
            best_score = score
            best_intent = intent

    return IntentResult(intent=best_intent, confidence=best_score)


def classify_intent(message: str) -> str:
    return classify_intent_with_confidence(message).intent


def is_low_confidence(result: IntentResult) -> bool:
    """A lone prefix hit (score 0.5) is too weak to act on."""
    return 0 < result.confidence <= config.LOW_CONFIDENCE_THRESHOLD


# =============================================================================
# Search terms
# =============================================================================

STOP_WORDS = {
    "байна", "уу", "юу", "та", "нар", "надад", "энэ", "тэр", "ямар",
    "ямар нэг", "нэг", "хэд", "хэдэн", "чи", "бид", "тэд", "манай",
    "танай", "миний", "маш", "их", "бага", "мөн", "бас", "ба", "болон",
    "гэж", "гэсэн", "гэдэг", "гэхэд", "харуулна", "харуул", "хайх",
    "сайн", "өглөөний", "мэнд", "сонирхож", "авмаар", "байгаа",
    # generic commerce words, useless as filters
    "бараа", "бара", "барааа", "бараагаа",
    "бүтээгдэхүүн", "бутээгдэхүүн", "бутээгдхүүн", "бүтээгдхүүн",
    "худалдаж", "зарна", "зарах", "авах", "авъя", "авья",
    "үзүүл", "үзүүлнэ", "ймар", "бн", "ве", "вэ",
}

CATEGORY_MAP: Dict[str, str] = {
    # clothing
    "хувцас": "clothing", "хувцаас": "clothing", "хувцс": "clothing",
    "кийим": "clothing", "өмсөх": "clothing",
    "цамц": "clothing", "даашинз": "clothing", "өмд": "clothing",
    "куртка": "clothing", "пальто": "clothing", "хүрэм": "clothing",
    "дээл": "clothing", "малгай": "clothing",
    "кашемир": "clothing", "ноолуур": "clothing", "ноолууран": "clothing",
    # shoes
    "гутал": "shoes", "гуталаа": "shoes", "гутлаа": "shoes",
    "пүүз": "shoes", "пууз": "shoes", "пүүзээ": "shoes",
    "шаахай": "shoes",
    # bags
    "цүнх": "bags", "цунх": "bags", "цүнхээ": "bags",
    "уут": "bags",
    # accessories
    "аксессуар": "accessories", "аксесуар": "accessories", "аксесор": "accessories",
    "бүс": "accessories", "бүсээ": "accessories",
    "зүүлт": "accessories", "бөгж": "accessories", "бугуйвч": "accessories",
    # food
    "хоол": "food", "хоолны": "food", "бууз": "food", "хуушуур": "food",
    "пицца": "food", "бургер": "food", "ундаа": "food",
    # beauty
    "гоо сайхан": "beauty", "крем": "beauty",
    "нүүр будалт": "beauty", "үнэртэй ус": "beauty",
    # electronics
    "утас": "electronics", "цэнэглэгч": "electronics", "чихэвч": "electronics",
    "зөөврийн компьютер": "electronics",
}


def extract_search_terms(message: str) -> str:
    words = normalize_text(message).split()
    return " ".join(w for w in words if len(w) > 1 and w not in STOP_WORDS)


def map_category(query: str) -> Optional[str]:
    """Return the first category whose keyword appears in the normalised query."""
    normalized = normalize_text(query)
    for keyword, category in CATEGORY_MAP.items():
        if keyword in normalized:
            return category
    return None

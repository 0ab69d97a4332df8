"""
Prompts for the reply generator.
System instructions are kept in both supported languages.
"""

from src.config import settings
from src.core.rag.models import RetrievedProduct
from src.core.text import Language, clamp_text, sanitize_input

SYSTEM_PROMPT_EN = """You are a concise, friendly sales agent for an online clothing store chatting on Telegram.

Formatting rules:
- Plain text only. No markdown, no HTML, no asterisks or underscores around words.
- Write product names directly, exactly as given in the context.
- Never include image URLs or links - product photos are sent separately.

Objectives:
- Understand the customer's need and recommend products from the provided context.
- Ask one question at a time when collecting details.
- Keep replies under 160 words.
- Reference exact names and prices from the context; do not invent details.
- If the user sent an image (marked "[User sent an image]"), help them find similar products from the results.
- When asked for recommendations, briefly introduce each available option.
- When the query is too broad (e.g. just "shoes"), ask what style they are looking for.
- After showing products, ask which one interests them.
- Be polite and proactive; turn interest into an order (item, name, phone, address).

Rules:
- Do not invent anything that is not in the context.
- You MUST reply entirely in English."""

SYSTEM_PROMPT_KM = """អ្នកគឺជាភ្នាក់ងារលក់មិត្តភាពសម្រាប់ហាងសម្លៀកបំពាក់អនឡាញនៅលើ Telegram។

ច្បាប់ទម្រង់:
- ប្រើតែអត្ថបទធម្មតា - គ្មាន markdown គ្មាន HTML គ្មានសញ្ញាផ្កាយ (*) ឬសញ្ញាខ្សែក្រោម (_)
- សរសេរឈ្មោះផលិតផលដោយផ្ទាល់ ដូចក្នុងបរិបទ
- កុំដាក់ URL រូបភាព ឬតំណ - រូបភាពនឹងបង្ហាញដាច់ដោយឡែក

គោលបំណង:
- យល់ពីតម្រូវការរបស់អតិថិជន និងណែនាំផលិតផលពីបរិបទដែលបានផ្តល់
- សួរសំណួរមួយនៅមួយពេល នៅពេលប្រមូលព័ត៌មាន
- រក្សាការឆ្លើយតបក្រោម 160 ពាក្យ
- យោងតាមឈ្មោះ និងតម្លៃពិតប្រាកដ កុំប្រឌិតព័ត៌មាន
- ប្រសិនអ្នកប្រើប្រាស់ផ្ញើរូបភាព ជួយពួកគេស្វែងរកផលិតផលស្រដៀងគ្នា
- បន្ទាប់ពីបង្ហាញផលិតផល សួរ "អ្នកចាប់អារម្មណ៍នឹងមួយណា?"

ច្បាប់:
- កុំប្រឌិតព័ត៌មានណាមួយដែលមិនបានផ្តល់ក្នុងបរិបទ
- អ្នកត្រូវឆ្លើយតបជាភាសាខ្មែរទាំងស្រុង"""

SUMMARY_SYSTEM_PROMPT = (
    "Summarize the conversation into concise bullet points with key facts and requests. "
    "Omit small talk. Do not include any PII like phone numbers or emails in full."
)

# Fixed replies used when the model cannot be reached
FALLBACK_UNAVAILABLE = {
    "en": "Sorry, the service is temporarily unavailable. Please try again in a moment.",
    "km": "សូមអភ័យទោស សេវាកម្មបច្ចុប្បន្នមិនអាចប្រើបានទេ។ សូមព្យាយាមម្តងទៀតក្នុងពេលបន្តិចទៀត។",
}
FALLBACK_ERROR = {
    "en": "Sorry, there was a technical issue. Please try again.",
    "km": "សូមអភ័យទោស មានបញ្ហាបច្ចេកទេស។ សូមព្យាយាមម្តងទៀត។",
}
FALLBACK_EMPTY = {
    "en": "Sure - how can I help further?",
    "km": "ពិតណាស់ - តើខ្ញុំអាចជួយអ្វីបានទៀត?",
}

IMAGE_WITH_QUESTION = '[User sent an image and asked: "{question}"]'
IMAGE_ONLY = "[User sent an image] Looking for products similar to this image"

DESCRIPTION_CHARS = 500
LEAD_FACT_CHARS = 100
SUMMARY_CHARS = 500


def build_system_prompt(language: Language = "en") -> str:
    """System instructions in the reply language."""
    return SYSTEM_PROMPT_KM if language == "km" else SYSTEM_PROMPT_EN


def format_product_context(products: list[RetrievedProduct], max_chars: int | None = None) -> str:
    """Format retrieved products for the model, clipped to a character budget."""
    if not products:
        return ""
    max_chars = max_chars or settings.rag_context_chars

    blocks = []
    ordered = sorted(products, key=lambda p: -p.similarity)
    for idx, p in enumerate(ordered, start=1):
        lines = [f"#{idx} (sim={p.similarity:.3f})", f"Name: {p.name}"]
        if p.price is not None:
            lines.append(f"Price: ${p.price:.2f}")
        if p.category:
            lines.append(f"Category: {p.category}")
        if p.size:
            lines.append(f"Size: {p.size}")
        lines.append(f"Description: {clamp_text(p.description, DESCRIPTION_CHARS)}")
        blocks.append("\n".join(lines))

    text = "Retrieved products (semantic + keyword matches):\n" + "\n\n".join(blocks)
    return text[:max_chars]


def format_lead_facts(lead) -> str:
    """Known customer details with the phone masked and every field clipped."""
    if lead is None:
        return ""

    def clean(value: str | None) -> str | None:
        if not value:
            return None
        return clamp_text(sanitize_input(value), LEAD_FACT_CHARS) or None

    facts = []
    if name := clean(lead.name):
        facts.append(f"Name: {name}")
    if lead.phone:
        facts.append(f"Phone: ***{lead.phone[-4:]}")
    if address := clean(lead.address):
        facts.append(f"Address: {address}")
    if item := clean(lead.item):
        facts.append(f"Interested Item: {item}")
    return "\n".join(facts)


def build_context_preamble(
    language: Language,
    lead=None,
    summary: str | None = None,
    products: list[RetrievedProduct] | None = None,
) -> str:
    """Assemble the system message: instructions, facts, summary, products."""
    parts = [build_system_prompt(language)]

    facts = format_lead_facts(lead)
    if facts:
        parts.append(f"Known customer details:\n{facts}")

    if summary:
        parts.append(f"Conversation summary:\n{clamp_text(sanitize_input(summary), SUMMARY_CHARS)}")

    rag_block = format_product_context(products or [])
    if rag_block:
        parts.append(rag_block)

    return "\n\n".join(parts)

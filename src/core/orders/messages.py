"""
Bilingual texts for the order flow.
"""

from src.core.orders.models import Lead, PendingOrder
from src.core.text import Language

PROMPTS = {
    "en": {
        "ask_item": "What product are you looking for today? 💬 You can also send me a photo and I'll find similar items!",
        "ask_name": "Perfect! To complete your order, I'll need some information.\n\nWhat's your full name?",
        "ask_phone": "Thanks! What's your phone number?",
        "ask_email": "And your email? (optional - send . to skip)",
        "ask_address": "Finally, what's your delivery address?",
        "done": "Thank you! Your details have been saved. We'll contact you shortly. 🎉",
        "order_cancelled": "No problem! Let me know if you'd like to order something else. 😊",
        "confirm_retry": "Please reply with YES to confirm or NO to cancel.",
        "summary_retry": "Please reply with YES to confirm your order or EDIT to change your details.",
        "order_failed": "Sorry, there was an error processing your order. Please try again or contact support.",
        "temporary_error": "Sorry, something went wrong on our side. Please send your message again in a moment.",
        # Validation errors, keyed by the validators' error keys
        "name_empty": "Name cannot be empty.",
        "name_too_long": "That name is too long.",
        "name_letters": "Please enter your name using letters.",
        "phone_empty": "Phone number cannot be empty.",
        "phone_invalid": "That doesn't look like a valid phone number. Please send it like 012345678 or +85512345678.",
        "email_empty": "Email cannot be empty. Send . to skip.",
        "email_invalid": "That email doesn't look right. Please check it or send . to skip.",
        "address_empty": "Address cannot be empty.",
        "address_too_short": "The address is too short. Please send the full delivery address.",
        "address_too_long": "That address is too long. Please shorten it.",
        "item_empty": "Please tell me which product you are looking for.",
    },
    "km": {
        "ask_item": "តើអ្នកកំពុងស្វែងរកផលិតផលអ្វី? 💬 អ្នកក៏អាចផ្ញើរូបភាពមកខ្ញុំ ហើយខ្ញុំនឹងស្វែងរកផលិតផលស្រដៀងគ្នា!",
        "ask_name": "ល្អណាស់! ដើម្បីបញ្ចប់ការបញ្ជាទិញរបស់អ្នក ខ្ញុំត្រូវការព័ត៌មានមួយចំនួន។\n\nតើអ្នកឈ្មោះអ្វី?",
        "ask_phone": "អរគុណ! តើលេខទូរសព័ទ្ធរបស់អ្នកជាអ្វី?",
        "ask_email": "ហើយអ៊ីមែលរបស់អ្នក? (ស្រេចចិត្ត - ផ្ញើ . ដើម្បីរំលង)",
        "ask_address": "ចុងក្រោយ តើអាសយដ្ឋានដឹកជញ្ជូនរបស់អ្នកនៅណា?",
        "done": "អរគុណ! ព័ត៌មានរបស់អ្នកត្រូវបានរក្សាទុក។ យើងនឹងទាក់ទងអ្នកក្នុងពេលឆាប់ៗនេះ។ 🎉",
        "order_cancelled": "គ្មានបញ្ហា! សូមប្រាប់ខ្ញុំប្រសិនបើអ្នកចង់បញ្ជាផលិតផលផ្សេងទៀត។ 😊",
        "confirm_retry": "សូមឆ្លើយតប YES ដើម្បីបញ្ជាក់ ឬ NO ដើម្បីបោះបង់។",
        "summary_retry": "សូមឆ្លើយតប YES ដើម្បីបញ្ជាក់ ឬ EDIT ដើម្បីកែប្រែព័ត៌មាន។",
        "order_failed": "សូមអភ័យទោស មានបញ្ហាក្នុងការដំណើរការការបញ្ជាទិញរបស់អ្នក។ សូមព្យាយាមម្តងទៀត។",
        "temporary_error": "សូមអភ័យទោស មានបញ្ហាបច្ចេកទេសបន្តិច។ សូមផ្ញើសាររបស់អ្នកម្តងទៀតបន្តិចទៀតនេះ។",
        "name_empty": "ឈ្មោះមិនអាចទទេបានទេ។",
        "name_too_long": "ឈ្មោះនេះវែងពេក។",
        "name_letters": "សូមបញ្ចូលឈ្មោះរបស់អ្នកជាអក្សរ។",
        "phone_empty": "លេខទូរស័ព្ទមិនអាចទទេបានទេ។",
        "phone_invalid": "លេខទូរស័ព្ទនេះមិនត្រឹមត្រូវទេ។ សូមផ្ញើដូចជា 012345678 ឬ +85512345678។",
        "email_empty": "អ៊ីមែលមិនអាចទទេបានទេ។ ផ្ញើ . ដើម្បីរំលង។",
        "email_invalid": "អ៊ីមែលនេះហាក់ដូចជាមិនត្រឹមត្រូវ។ សូមពិនិត្យម្តងទៀត ឬផ្ញើ . ដើម្បីរំលង។",
        "address_empty": "អាសយដ្ឋានមិនអាចទទេបានទេ។",
        "address_too_short": "អាសយដ្ឋានខ្លីពេក។ សូមផ្ញើអាសយដ្ឋានដឹកជញ្ជូនពេញលេញ។",
        "address_too_long": "អាសយដ្ឋាននេះវែងពេក។ សូមសរសេរឱ្យខ្លីជាងនេះ។",
        "item_empty": "សូមប្រាប់ខ្ញុំពីផលិតផលដែលអ្នកកំពុងស្វែងរក។",
    },
}


def get_prompts(language: Language = "en") -> dict[str, str]:
    """Get prompts in the specified language."""
    return PROMPTS.get(language, PROMPTS["en"])


def reprompt(error_key: str, prompt_key: str, language: Language = "en") -> str:
    """Validation error followed by the question being asked again."""
    prompts = get_prompts(language)
    return f"{prompts[error_key]}\n\n{prompts[prompt_key]}"


def format_order_summary(order: PendingOrder, lead: Lead, language: Language = "en") -> str:
    """Order summary for customer review before confirmation."""
    km = language == "km"
    lines = ["📋 សេចក្តីសង្ខេបការបញ្ជាទិញ" if km else "📋 ORDER SUMMARY", ""]
    lines.append("ផលិតផល:" if km else "Items:")

    for index, item in enumerate(order.items, start=1):
        lines.append(f"{index}. {item.product_name}")
        qty = "បរិមាណ" if km else "Qty"
        lines.append(
            f"   {qty}: {item.quantity} × ${item.unit_price:.2f} = ${item.total_price:.2f}"
        )

    missing = "មិនមាន" if km else "N/A"
    lines += [
        "",
        f"{'សរុប' if km else 'Total'}: ${order.total:.2f}",
        "",
        "ព័ត៌មានដឹកជញ្ជូន:" if km else "Delivery Information:",
        f"👤 {'ឈ្មោះ' if km else 'Name'}: {lead.name or missing}",
        f"📞 {'លេខទូរស័ព្ទ' if km else 'Phone'}: {lead.phone or missing}",
    ]
    if lead.email:
        lines.append(f"📧 {'អ៊ីមែល' if km else 'Email'}: {lead.email}")
    lines.append(f"📍 {'អាសយដ្ឋាន' if km else 'Address'}: {lead.address or missing}")
    lines.append("")

    if km:
        lines.append("សូមពិនិត្យមើលការបញ្ជាទិញរបស់អ្នកដោយប្រុងប្រយ័ត្ន។")
        lines.append("ឆ្លើយតប YES ដើម្បីបញ្ជាក់ ឬ EDIT ដើម្បីកែប្រែ។")
    else:
        lines.append("Please review your order carefully.")
        lines.append("Reply with YES to confirm or EDIT to make changes.")

    return "\n".join(lines)


def confirm_order_prompt(order: PendingOrder, language: Language = "en") -> str:
    """Final YES/NO question before the order is placed."""
    item_list = "\n".join(
        f"  - {item.quantity}x {item.product_name} (${item.unit_price:.2f} each)"
        for item in order.items
    )
    if language == "km":
        return (
            f"ដើម្បីបញ្ជាក់ការបញ្ជាទិញរបស់អ្នក:\n\n{item_list}\n\n"
            f"សរុប: ${order.total:.2f}\n\nឆ្លើយតប YES ដើម្បីបន្ត ឬ NO ដើម្បីបោះបង់។"
        )
    return (
        f"To confirm your order:\n\n{item_list}\n\n"
        f"Total: ${order.total:.2f}\n\nReply YES to proceed or NO to cancel."
    )


def order_confirmed_prompt(order_id: str, total: float, language: Language = "en") -> str:
    if language == "km":
        return (
            f"✅ ការបញ្ជាទិញត្រូវបានបញ្ជាក់!\n\nលេខកូដការបញ្ជាទិញ: {order_id}\nសរុប: ${total:.2f}\n\n"
            "យើងនឹងទាក់ទងអ្នកក្នុងពេលឆាប់ៗនេះសម្រាប់ការទូទាត់ និងការដឹកជញ្ជូន។ អរគុណ! 🎉"
        )
    return (
        f"✅ Order confirmed!\n\nOrder ID: {order_id}\nTotal: ${total:.2f}\n\n"
        "We'll contact you shortly for payment and delivery. Thank you! 🎉"
    )

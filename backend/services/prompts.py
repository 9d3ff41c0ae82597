"""Prompt templates and canned answers, per response language."""
from typing import Dict

from config import DEFAULT_LANGUAGE

GROUNDING_PROMPTS: Dict[str, str] = {
    "en": """Answer this question using ONLY the information provided in the context below. Give a direct, specific answer. If the answer is not in the context, say: "I don't have enough information to answer that."

CONTEXT:
{context}

QUESTION: {question}

ANSWER:""",
    "fa": """فقط با استفاده از اطلاعات «متن زمینه» زیر پاسخ بده. پاسخ باید دقیق، واضح و به زبان فارسی باشد. اگر پاسخ در متن نبود، فقط بگو: «اطلاعات کافی در متن موجود نیست».

متن زمینه:
{context}

پرسش: {question}

پاسخ:""",
}

TRANSLATION_PROMPT = (
    "Translate the following text to English. "
    "Return only the translation without quotes or extra commentary.\n\nText:\n{text}"
)

NO_DOCUMENTS = "no_documents"
NO_CHUNKS = "no_chunks"
NO_RELEVANT_INFORMATION = "no_relevant_information"
INSUFFICIENT_INFORMATION = "insufficient_information"

MESSAGES: Dict[str, Dict[str, str]] = {
    "en": {
        NO_DOCUMENTS: "I don't have any documents in my knowledge base yet. Please upload some PDF files first.",
        NO_CHUNKS: "I don't have any processed content in my knowledge base yet. Please upload some PDF files first.",
        NO_RELEVANT_INFORMATION: "I don't have enough relevant information to answer that question accurately.",
        INSUFFICIENT_INFORMATION: "I don't have that information in the provided documents.",
    },
    "fa": {
        NO_DOCUMENTS: "هنوز هیچ سندی در پایگاه دانش وجود ندارد. لطفاً ابتدا چند فایل PDF بارگذاری کنید.",
        NO_CHUNKS: "هنوز هیچ محتوای پردازش‌شده‌ای در پایگاه دانش وجود ندارد. لطفاً ابتدا چند فایل PDF بارگذاری کنید.",
        NO_RELEVANT_INFORMATION: "اطلاعات مرتبط کافی برای پاسخ دقیق به این پرسش وجود ندارد.",
        INSUFFICIENT_INFORMATION: "این اطلاعات در اسناد موجود نیست.",
    },
}


def _language(language: str) -> str:
    return language if language in GROUNDING_PROMPTS else DEFAULT_LANGUAGE


def build_grounding_prompt(context: str, question: str, language: str = DEFAULT_LANGUAGE) -> str:
    """Build the prompt that restricts the answer to the supplied context."""
    return GROUNDING_PROMPTS[_language(language)].format(context=context, question=question)


def build_translation_prompt(text: str) -> str:
    return TRANSLATION_PROMPT.format(text=text)


def message(key: str, language: str = DEFAULT_LANGUAGE) -> str:
    """Canned answer for a terminal state, in the response language."""
    return MESSAGES[_language(language)][key]

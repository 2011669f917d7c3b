from typing import List, Optional

import app.config.config as configs
from app.model.chat.chat_response import QuestionCategory
from app.model.chat.message import ConversationSummary, Feedback, StoredMessage
from app.service.chat.exceptions import ValidationError
from app.service.language.languages import resolve_language
from app.service.store.base import MessageStore

POPULAR_QUESTIONS: dict[str, list[dict]] = {
    "en": [
        {
            "category": "Crop Management",
            "questions": [
                "How to improve soil fertility for rice cultivation?",
                "What are the best practices for pest control in vegetables?",
                "When is the best time to plant tomatoes?",
                "What fertilizer should I use?",
            ],
        },
        {
            "category": "Weather & Climate",
            "questions": [
                "How does monsoon affect crop planning?",
                "What crops are suitable for drought conditions?",
                "How to protect crops from excessive rainfall?",
                "Should I irrigate before rain?",
            ],
        },
        {
            "category": "Market & Pricing",
            "questions": [
                "What is the current market price for coconuts?",
                "How to find buyers for organic produce?",
                "What are the storage requirements for spices?",
            ],
        },
    ],
    "hi": [
        {
            "category": "फसल प्रबंधन",
            "questions": [
                "धान की खेती के लिए मिट्टी की उर्वरता कैसे बढ़ाएं?",
                "सब्ज़ियों में कीट नियंत्रण के सबसे अच्छे तरीके क्या हैं?",
                "टमाटर लगाने का सबसे अच्छा समय कब है?",
                "मुझे कौन सा उर्वरक इस्तेमाल करना चाहिए?",
            ],
        },
        {
            "category": "मौसम और जलवायु",
            "questions": [
                "मानसून फसल योजना को कैसे प्रभावित करता है?",
                "सूखे में कौन सी फसलें उपयुक्त हैं?",
                "ज़्यादा बारिश से फसलों को कैसे बचाएं?",
                "क्या बारिश से पहले सिंचाई करनी चाहिए?",
            ],
        },
        {
            "category": "बाज़ार और मूल्य",
            "questions": [
                "नारियल का मौजूदा बाज़ार भाव क्या है?",
                "जैविक उपज के खरीदार कैसे ढूंढें?",
                "मसालों के भंडारण की क्या ज़रूरतें हैं?",
            ],
        },
    ],
}


def popular_questions(language: Optional[str] = None) -> tuple[str, List[QuestionCategory]]:
    """Curated quick-reply questions. Languages without a table get English."""
    code = resolve_language(language)
    if code not in POPULAR_QUESTIONS:
        code = configs.DEFAULT_LANGUAGE
    return code, [QuestionCategory(**entry) for entry in POPULAR_QUESTIONS[code]]


class ChatHistoryService:
    def __init__(self, store: MessageStore, default_limit: int = configs.HISTORY_LIMIT) -> None:
        self._store = store
        self._default_limit = default_limit

    def get_history(self, session_id: str, limit: Optional[int] = None) -> List[StoredMessage]:
        if not session_id or not session_id.strip():
            raise ValidationError("session_id is required")
        return self._store.list_by_session(session_id, limit or self._default_limit)

    def submit_feedback(self, message_id: str, feedback: Feedback) -> StoredMessage:
        # Omitted fields keep their stored values.
        return self._store.update_feedback(message_id, feedback)

    def sessions_for_user(self, user_id: str) -> List[ConversationSummary]:
        return self._store.sessions_for_user(user_id)

from dataclasses import dataclass

DEFAULT_CONTEXT = "Bíblia Sagrada"
WELCOME_MESSAGE = (
    "Olá! A paz seja convosco. Estou aqui para ajudar a aprofundar seu entendimento "
    "sobre este capítulo. O que gostaria de saber?"
)


@dataclass(frozen=True)
class ChatMessage:
    role: str  # "user" or "ai"
    text: str


def chapter_context(book_name, chapter, summary=""):
    if not book_name:
        return DEFAULT_CONTEXT
    return f"{book_name} Capítulo {chapter}: {summary}"


class AssistantChat:
    """Conversation with the Bible assistant, reset whenever the chapter changes."""

    def __init__(self, backend, context=None):
        self.backend = backend
        self.context = None
        self.messages = [ChatMessage("ai", WELCOME_MESSAGE)]
        self.is_typing = False
        if context:
            self.set_context(context)

    def set_context(self, context):
        if context == self.context:
            return
        self.context = context
        self.messages = [
            ChatMessage(
                "ai",
                f"Estou pronto para discutir sobre {context}. "
                "Tem alguma dúvida teológica ou histórica?",
            )
        ]

    async def send(self, query):
        query = (query or "").strip()
        if not query:
            return None
        self.messages.append(ChatMessage("user", query))
        self.is_typing = True
        try:
            reply = await self.backend.ask_bible_assistant(query, self.context or DEFAULT_CONTEXT)
        finally:
            self.is_typing = False
        message = ChatMessage("ai", reply)
        self.messages.append(message)
        return message

import asyncio
import base64
import json

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from core.content_backend import ContentBackend
from core.errors import (
    AudioGenerationError,
    MalformedResponseError,
    MissingCredentialError,
    TransientServiceError,
    VerbumError,
)
from system import runtime_settings

MAX_PARSE_RETRIES = 2
MAX_SERVER_RETRIES = 3
EMPTY_RESPONSE_DELAY_S = 1.0
SERVER_RETRY_STEP_S = 1.5
TRANSIENT_MARKERS = ("500", "503", "Internal")

ASSISTANT_NO_KEY_REPLY = (
    "Por favor, configure sua API Key para usar o assistente. (Erro: Chave não detectada)"
)
ASSISTANT_EMPTY_REPLY = "Desculpe, não consegui formular uma resposta."
ASSISTANT_ERROR_REPLY = "Erro ao consultar o assistente."

CHAPTER_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "verses": types.Schema(
            type=types.Type.ARRAY,
            items=types.Schema(
                type=types.Type.OBJECT,
                properties={
                    "number": types.Schema(type=types.Type.INTEGER),
                    "text": types.Schema(type=types.Type.STRING),
                },
                required=["number", "text"],
            ),
        ),
        "summary": types.Schema(type=types.Type.STRING),
    },
    required=["verses", "summary"],
)

SAFETY_SETTINGS = [
    types.SafetySetting(category=category, threshold=types.HarmBlockThreshold.BLOCK_NONE)
    for category in (
        types.HarmCategory.HARM_CATEGORY_HARASSMENT,
        types.HarmCategory.HARM_CATEGORY_HATE_SPEECH,
        types.HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
        types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
    )
]


def chapter_prompt(book_name, chapter_number):
    return (
        f"Livro: {book_name}, Capítulo: {chapter_number}.\n\n"
        "Tarefa: Forneça o texto bíblico completo em Português (versão Almeida).\n"
        "Forneça também um resumo teológico breve do capítulo."
    )


def assistant_prompt(query, context):
    return (
        f"Contexto Atual (Capítulo sendo lido): {context}\n\n"
        f"Pergunta do Usuário: {query}\n\n"
        "Instrução: Atue como um teólogo sábio, gentil e especialista bíblico. "
        "Responda à pergunta do usuário com base no contexto fornecido e no conhecimento "
        "geral bíblico. Use markdown para formatação. Seja conciso mas profundo."
    )


def parse_chapter_payload(text):
    try:
        data = json.loads(text)
    except ValueError as exc:
        raise MalformedResponseError(f"Chapter response is not valid JSON: {exc}") from exc

    verses = data.get("verses") if isinstance(data, dict) else None
    if not isinstance(verses, list) or not verses:
        raise MalformedResponseError("Invalid or empty verse structure.")

    normalized = []
    for item in verses:
        if not isinstance(item, dict) or "number" not in item or "text" not in item:
            raise MalformedResponseError(f"Verse entry missing fields: {item!r}")
        try:
            number = int(item["number"])
        except (TypeError, ValueError) as exc:
            raise MalformedResponseError(f"Verse number is not an integer: {item!r}") from exc
        normalized.append({"number": number, "text": str(item["text"])})
    return {"verses": normalized, "summary": str(data.get("summary") or "")}


def is_transient_error(exc):
    if isinstance(exc, genai_errors.ServerError):
        return True
    message = str(exc)
    return any(marker in message for marker in TRANSIENT_MARKERS)


def _to_base64(data):
    if isinstance(data, str):
        return data
    return base64.b64encode(data).decode("ascii")


def _first_inline_data(response):
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return None
    content = getattr(candidates[0], "content", None)
    parts = getattr(content, "parts", None) or []
    if not parts:
        return None
    inline = getattr(parts[0], "inline_data", None)
    return getattr(inline, "data", None) if inline is not None else None


class GeminiService(ContentBackend):
    def __init__(self, api_key=None, client=None, debug=False, log_callback=None):
        self.api_key = api_key
        self._client = client
        self.debug = debug
        self.log_callback = log_callback

    def debug_log(self, message):
        if self.debug:
            print(f"[DEBUG][GeminiService] {message}")

    def log(self, message):
        if self.log_callback:
            self.log_callback(message)
        else:
            print(message)

    def has_credentials(self):
        return self._client is not None or bool(self.api_key or runtime_settings.resolve_api_key())

    def _get_client(self):
        if self._client is not None:
            return self._client
        key = self.api_key or runtime_settings.resolve_api_key()
        if not key:
            raise MissingCredentialError()
        self._client = genai.Client(api_key=key)
        return self._client

    async def fetch_chapter_content(self, book_name, chapter_number):
        client = self._get_client()
        config = types.GenerateContentConfig(
            temperature=runtime_settings.get_float_setting("VERBUM_TEXT_TEMPERATURE"),
            response_mime_type="application/json",
            response_schema=CHAPTER_SCHEMA,
            safety_settings=SAFETY_SETTINGS,
        )
        attempt = 0
        while True:
            try:
                response = await client.aio.models.generate_content(
                    model=runtime_settings.get_setting("VERBUM_TEXT_MODEL"),
                    contents=chapter_prompt(book_name, chapter_number),
                    config=config,
                )
            except Exception as exc:
                self.log(f"Chapter fetch failed (attempt {attempt + 1}): {exc}")
                if not is_transient_error(exc):
                    raise
                if attempt >= MAX_SERVER_RETRIES:
                    raise TransientServiceError(
                        "Failed to load the chapter. The service may be unstable."
                    ) from exc
                await asyncio.sleep((attempt + 1) * SERVER_RETRY_STEP_S)
                attempt += 1
                continue

            text = response.text
            if text:
                try:
                    return parse_chapter_payload(text)
                except MalformedResponseError as exc:
                    if attempt >= MAX_PARSE_RETRIES:
                        raise MalformedResponseError(
                            "Received the chapter data but it could not be processed."
                        ) from exc
                    attempt += 1
                    self.log(f"Parse error, retrying ({attempt}/{MAX_PARSE_RETRIES + 1}): {exc}")
                    continue

            if attempt >= MAX_PARSE_RETRIES:
                raise MalformedResponseError("The model returned no text after multiple attempts.")
            attempt += 1
            self.log(f"Empty response, retrying ({attempt}/{MAX_PARSE_RETRIES + 1})")
            await asyncio.sleep(EMPTY_RESPONSE_DELAY_S)

    async def get_verse_audio(self, text, voice_id="Puck"):
        client = self._get_client()
        config = types.GenerateContentConfig(
            response_modalities=["AUDIO"],
            speech_config=types.SpeechConfig(
                voice_config=types.VoiceConfig(
                    prebuilt_voice_config=types.PrebuiltVoiceConfig(voice_name=voice_id),
                )
            ),
        )
        try:
            response = await client.aio.models.generate_content(
                model=runtime_settings.get_setting("VERBUM_TTS_MODEL"),
                contents=text,
                config=config,
            )
        except Exception as exc:
            self.log(f"TTS error: {exc}")
            raise
        data = _first_inline_data(response)
        if not data:
            raise AudioGenerationError("Could not generate audio for the verse.")
        self.debug_log(f"Received {len(data)} audio bytes for voice {voice_id}")
        return _to_base64(data)

    async def generate_bible_cover(self, prompt):
        client = self._get_client()
        try:
            response = await client.aio.models.generate_images(
                model=runtime_settings.get_setting("VERBUM_IMAGE_MODEL"),
                prompt=prompt,
                config=types.GenerateImagesConfig(
                    number_of_images=1,
                    aspect_ratio="3:4",
                    output_mime_type="image/jpeg",
                ),
            )
            images = getattr(response, "generated_images", None) or []
            image_bytes = images[0].image.image_bytes if images else None
            if not image_bytes:
                raise VerbumError("No image generated.")
            return _to_base64(image_bytes)
        except Exception as exc:
            self.log(f"Cover generation error: {exc}")
            raise VerbumError("Failed to generate the cover.") from exc

    async def ask_bible_assistant(self, query, context):
        try:
            client = self._get_client()
        except MissingCredentialError:
            return ASSISTANT_NO_KEY_REPLY
        try:
            response = await client.aio.models.generate_content(
                model=runtime_settings.get_setting("VERBUM_TEXT_MODEL"),
                contents=assistant_prompt(query, context),
            )
        except Exception as exc:
            self.log(f"Assistant error: {exc}")
            return ASSISTANT_ERROR_REPLY
        return response.text or ASSISTANT_EMPTY_REPLY

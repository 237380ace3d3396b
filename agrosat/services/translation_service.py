import asyncio
import logging
from typing import Optional

from deep_translator import GoogleTranslator, exceptions

logger = logging.getLogger(__name__)

# preferred_language values stored on farmers -> translator codes
LANGUAGE_CODES = {
    "english": "en",
    "swahili": "sw",
    "french": "fr",
    "arabic": "ar",
    "amharic": "am",
    "hausa": "ha",
    "yoruba": "yo",
    "spanish": "es",
    "portuguese": "pt",
    "hindi": "hi",
}


def language_code(language: Optional[str]) -> str:
    if not language:
        return "en"
    language = language.strip().lower()
    return LANGUAGE_CODES.get(language, language if len(language) == 2 else "en")


class TranslationService:
    async def translate_text(self, text: str, target_language: str, source_language: Optional[str] = "auto") -> str:
        """
        Translates text with GoogleTranslator from deep_translator.
        Returns the original text when translation is unavailable.
        """
        if not text:
            return ""
        target = language_code(target_language)
        if target == "en":
            return text

        # deep_translator is synchronous
        try:
            translated_text = await asyncio.to_thread(
                GoogleTranslator(source=source_language, target=target).translate,
                text,
            )
            return translated_text if translated_text is not None else text
        except exceptions.LanguageNotSupportedException:
            logger.warning("Translation target '%s' not supported", target)
            return text
        except exceptions.TranslationNotFound:
            logger.warning("No translation found into '%s'", target)
            return text
        except exceptions.BaseError as e:
            logger.error("Translation into '%s' failed: %s", target, e)
            return text
        except Exception as e:
            # network failures surface as requests exceptions
            logger.error("Translation into '%s' failed: %s", target, e)
            return text


def get_translation_service():
    return TranslationService()

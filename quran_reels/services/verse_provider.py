"""
Verse Provider - reciter catalog and verse text lookup.

Text comes from the alquran.cloud REST API; recitation audio is addressed on
everyayah.com by reciter folder and zero-padded surah/verse code.
"""

import logging
from typing import Optional

import httpx

from quran_reels.config import Settings, get_settings
from quran_reels.exceptions import VerseTextUnavailable
from quran_reels.models import AudioKey, VerseRequest
from quran_reels.services.asset_acquirer import build_audio_url

logger = logging.getLogger(__name__)


# Reciter folders available on the recitation host
RECITERS = [
    {"id": "Abdul_Basit_Murattal_64kbps", "name": "عبد الباسط عبد الصمد (مرتل)", "name_en": "Abdul Basit (Murattal)"},
    {"id": "Abdurrahmaan_As-Sudais_192kbps", "name": "عبد الرحمن السديس", "name_en": "Abdurrahmaan As-Sudais"},
    {"id": "Alafasy_128kbps", "name": "مشاري العفاسي", "name_en": "Mishary Rashid Alafasy"},
    {"id": "Ghamadi_40kbps", "name": "سعد الغامدي", "name_en": "Saad Al-Ghamdi"},
    {"id": "Husary_64kbps", "name": "محمود خليل الحصري", "name_en": "Mahmoud Khalil Al-Husary"},
    {"id": "Minshawi_Murattal_128kbps", "name": "محمد صديق المنشاوي (مرتل)", "name_en": "Mohamed Siddiq Al-Minshawi"},
    {"id": "MaherAlMuaiqly128kbps", "name": "ماهر المعيقلي", "name_en": "Maher Al-Muaiqly"},
]


def get_reciter_ids() -> set[str]:
    return {r["id"] for r in RECITERS}


def get_audio_url(
    reciter_id: str,
    surah: int,
    verse_number: int,
    settings: Optional[Settings] = None,
) -> str:
    settings = settings or get_settings()
    return build_audio_url(settings.audio_base_url, AudioKey(reciter_id, surah, verse_number))


class VerseTextClient:
    """
    Client for the verse text API.

    Features:
    - Surah catalog for the selection UI
    - Verse range lookup returning VerseRequests in canonical order
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.settings.text_api_base_url,
            timeout=self.settings.text_api_timeout_seconds,
            transport=self._transport,
        )

    async def _get_data(self, path: str):
        """GET path and unwrap the API's {"code", "status", "data"} envelope."""
        try:
            async with self._client() as client:
                response = await client.get(path)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Verse text request failed ({path}): {e}")
            raise VerseTextUnavailable(f"Verse text request failed: {e}") from e
        except ValueError as e:
            raise VerseTextUnavailable(f"Verse text response is not JSON: {e}") from e

        if not isinstance(payload, dict) or "data" not in payload:
            raise VerseTextUnavailable(f"Unexpected verse text response for {path}")
        return payload["data"]

    async def get_surahs(self) -> list[dict]:
        """List all surahs (number, names, numberOfAyahs, ...)."""
        surahs = await self._get_data("/surah")
        logger.info(f"Fetched {len(surahs)} surahs")
        return surahs

    async def get_ayahs(self, surah: int, from_verse: int, to_verse: int) -> list[VerseRequest]:
        """
        Fetch the verses of a surah within [from_verse, to_verse].

        Returns:
            VerseRequests ordered by verse number

        Raises:
            VerseTextUnavailable: On transport errors or a malformed payload
        """
        data = await self._get_data(f"/surah/{surah}")
        try:
            ayahs = data["ayahs"]
            verses = [
                VerseRequest(surah=surah, verse_number=int(a["numberInSurah"]), text=a["text"])
                for a in ayahs
                if from_verse <= int(a["numberInSurah"]) <= to_verse
            ]
        except (KeyError, TypeError, ValueError) as e:
            raise VerseTextUnavailable(f"Malformed verse payload for surah {surah}: {e}") from e

        verses.sort(key=lambda v: v.verse_number)
        logger.info(f"Fetched {len(verses)} verses of surah {surah} ({from_verse}-{to_verse})")
        return verses

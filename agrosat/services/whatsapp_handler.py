import logging
from typing import NamedTuple, Optional

from fastapi import Depends

from agrosat.models.farmer import Farmer
from agrosat.models.satellite_insight import SatelliteInsight
from agrosat.services.carbon_credit_service import CarbonCreditService, get_carbon_credit_service
from agrosat.services.translation_service import TranslationService, get_translation_service
from agrosat.services.weather_service import WeatherService, get_weather_service

logger = logging.getLogger(__name__)

CROP_CONDITIONS = {"good": 1, "fair": 2, "poor": 3}

MAIN_MENU_TEXT = """🌾 *SpaceZ Agro Platform Menu*

Reply with:
1️⃣ *CROP* - Report crop condition
2️⃣ *WEATHER* - Get weather forecast
3️⃣ *CARBON* - Carbon credit program
4️⃣ *SATELLITE* - Get satellite insights
5️⃣ *ADVISOR* - Speak with agricultural expert
6️⃣ *MENU* - Show this menu again

_Helping Rural Farmers Make More!_ 💚"""

WELCOME_TEXT = """Hello! 👋 Welcome to SpaceZ Agro Platform!

We're here to help you make more from your farming! 🌾

Reply *MENU* to see all available options, or ask any farming question.

_Your success is our mission!_ 💚"""

CROP_PROMPT_TEXT = """🌾 *Crop Condition Report*

Please reply with your crop condition:
• *GOOD* - Healthy crops, no issues
• *FAIR* - Some concerns, needs attention
• *POOR* - Significant problems"""

CARBON_TEXT = """🌱 *Carbon Credit Program*

Earn money for sustainable farming!

Benefits:
• Get paid for eco-friendly practices
• Improve soil health
• Increase long-term yields

Reply *JOIN* to enroll."""

ADVISOR_TEXT = """👨‍🌾 *Agricultural Advisor*

Our expert team is ready to help!

Common topics:
• Pest management
• Crop rotation advice
• Fertilizer recommendations
• Market prices

Reply with your question and an advisor will get back to you."""

CONDITION_REPLIES = {
    1: "✅ Thank you! Your crops are recorded as *GOOD*. Keep up the great work!",
    2: "⚠️ Thank you! Your crops are recorded as *FAIR*. Reply *ADVISOR* for tips on improving crop health.",
    3: "🚨 Thank you! Your crops are recorded as *POOR*. An agricultural advisor will contact you soon.",
}


class Reply(NamedTuple):
    text: str
    crop_condition: Optional[int] = None
    opted_in_carbon: bool = False


def _matches(text: str, keywords, digit: str) -> bool:
    """Keywords match anywhere in the message; the menu digit only as the whole message."""
    return text == digit or any(k in text for k in keywords)


class WhatsAppHandler:
    """Keyword auto-reply shared by the Meta and Twilio WhatsApp channels."""

    def __init__(
        self,
        weather_service: WeatherService,
        translation_service: TranslationService,
        carbon_service: CarbonCreditService,
    ):
        self.weather_service = weather_service
        self.translation_service = translation_service
        self.carbon_service = carbon_service

    async def handle_message(self, farmer: Farmer, message_body: Optional[str]) -> Reply:
        text = (message_body or "").strip().lower()
        reply = await self.route(farmer, text)
        return reply._replace(text=await self.translate(reply.text, farmer))

    async def route(self, farmer: Farmer, text: str) -> Reply:
        if text in CROP_CONDITIONS:
            condition = CROP_CONDITIONS[text]
            return Reply(CONDITION_REPLIES[condition], crop_condition=condition)
        if text == "join":
            return await self.join_carbon_program(farmer)
        if _matches(text, ("crop",), "1"):
            return Reply(CROP_PROMPT_TEXT)
        if _matches(text, ("weather",), "2"):
            summary = await self.weather_service.summary_for(farmer)
            return Reply(f"🌤️ *Weather Forecast*\n\n{summary}\n\nBest time for farming activities: Early morning (6-9 AM)")
        if _matches(text, ("carbon",), "3"):
            return Reply(CARBON_TEXT)
        if _matches(text, ("satellite",), "4"):
            return Reply(await self.satellite_summary(farmer))
        if _matches(text, ("advisor", "help"), "5"):
            return Reply(ADVISOR_TEXT)
        if _matches(text, ("menu",), "6"):
            return Reply(MAIN_MENU_TEXT)
        return Reply(WELCOME_TEXT)

    async def join_carbon_program(self, farmer: Farmer) -> Reply:
        if await self.carbon_service.find_for_farmer(farmer.id):
            return Reply("🌱 You are already enrolled in the Carbon Credit Program. We'll update you on verification.")
        credit = await self.carbon_service.enroll(farmer, ["WhatsApp Opt-in"], 0.0, 0.0)
        logger.info("Farmer %s joined the carbon program over WhatsApp", farmer.id)
        return Reply(
            f"🎉 Welcome to the Carbon Credit Program! Your registry ID is {credit.registry_id}. "
            "A field officer will contact you to record your practices.",
            opted_in_carbon=True,
        )

    async def satellite_summary(self, farmer: Farmer) -> str:
        insight = await SatelliteInsight.find(SatelliteInsight.farmer_id == farmer.id).sort(
            -SatelliteInsight.created_at
        ).first_or_none()
        if not insight:
            return "🛰️ *Satellite Insights*\n\nNo satellite analysis is available for your fields yet."
        return (
            f"🛰️ *Satellite Insights* ({insight.image_date})\n\n"
            f"• Vegetation Index (NDVI): {insight.ndvi_score}\n"
            f"• Soil Moisture: {insight.soil_moisture}%\n"
            f"• Recommendation: {insight.recommendation}"
        )

    async def translate(self, text: str, farmer: Farmer) -> str:
        if not farmer.preferred_language or farmer.preferred_language.lower() == "english":
            return text
        return await self.translation_service.translate_text(text, farmer.preferred_language)

    @staticmethod
    def record_fields(reply: Reply, message_body: Optional[str], farmer: Farmer) -> dict:
        """CallRecord kwargs describing one inbound message and its reply."""
        fields = {
            "transcript": f'Received: "{message_body or ""}" | Replied: "{reply.text[:100]}..."',
            "opted_in_carbon": reply.opted_in_carbon,
        }
        if reply.crop_condition:
            fields["crop_condition"] = reply.crop_condition
            fields["crop_selected"] = farmer.crop
        return fields


def get_whatsapp_handler(
    weather_service: WeatherService = Depends(get_weather_service),
    translation_service: TranslationService = Depends(get_translation_service),
    carbon_service: CarbonCreditService = Depends(get_carbon_credit_service),
):
    return WhatsAppHandler(weather_service, translation_service, carbon_service)

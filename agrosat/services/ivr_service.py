import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import Depends
from twilio.twiml.voice_response import Gather, VoiceResponse

from agrosat.core.config import settings
from agrosat.models.call_record import CallStatus, CallType
from agrosat.models.farmer import Farmer
from agrosat.services.call_log_service import CallLogService, get_call_log_service
from agrosat.services.carbon_credit_service import CarbonCreditService, get_carbon_credit_service
from agrosat.services.farmer_service import FarmerService, get_farmer_service
from agrosat.services.weather_service import WeatherService, get_weather_service

logger = logging.getLogger(__name__)

VOICE = "alice"
IVR_PATH = "/api/twilio/ivr"
CONDITION_NAMES = {1: "Good", 2: "Fair", 3: "Poor"}


def gather_action(step: Optional[str] = None, farmer: Optional[Farmer] = None) -> str:
    if not step:
        return IVR_PATH
    return f"{IVR_PATH}?{urlencode({'step': step, 'farmer_id': str(farmer.id)})}"


class IvrService:
    """Keypad voice menu answered with TwiML."""

    def __init__(
        self,
        farmer_service: FarmerService,
        call_log: CallLogService,
        carbon_service: CarbonCreditService,
        weather_service: WeatherService,
    ):
        self.farmer_service = farmer_service
        self.call_log = call_log
        self.carbon_service = carbon_service
        self.weather_service = weather_service

    @staticmethod
    def say_and_hang_up(text: str) -> str:
        response = VoiceResponse()
        response.say(text, voice=VOICE)
        response.hangup()
        return str(response)

    @staticmethod
    def prompt(text: str, action: str, closing: Optional[str] = None) -> str:
        response = VoiceResponse()
        response.say(text, voice=VOICE)
        gather = Gather(num_digits=1, action=action, method="POST", timeout=10)
        gather.say("Please make your selection now.", voice=VOICE)
        response.append(gather)
        if closing:
            response.say(closing, voice=VOICE)
        response.hangup()
        return str(response)

    async def handle(self, from_number: Optional[str], digits: Optional[str], step: Optional[str] = None) -> str:
        farmer = await self.farmer_service.find_by_phone(from_number)
        if not farmer:
            logger.info("IVR call from unregistered number %s", from_number)
            return self.say_and_hang_up(
                "Welcome to AgroSat. Your phone number is not registered. "
                "Please contact support to register your farm."
            )

        if step == "crop_condition":
            return await self.record_crop_condition(farmer, digits)
        if step == "carbon_optin":
            return await self.carbon_opt_in(farmer, digits)
        if not digits:
            return self.main_menu(farmer)
        return await self.menu_selection(farmer, digits)

    def main_menu(self, farmer: Farmer) -> str:
        return self.prompt(
            f"Hello {farmer.full_name or 'farmer'}, welcome to AgroSat. Press 1 to report crop conditions, "
            "Press 2 for weather information, Press 3 for carbon credit program, "
            "or Press 0 to speak with an agent.",
            gather_action(),
            closing="We didn't receive your selection. Goodbye.",
        )

    async def menu_selection(self, farmer: Farmer, digits: str) -> str:
        if digits == "1":
            return self.prompt(
                "Please report your crop condition. Press 1 for Good, Press 2 for Fair, Press 3 for Poor.",
                gather_action("crop_condition", farmer),
            )
        if digits == "2":
            summary = await self.weather_service.summary_for(farmer)
            return self.say_and_hang_up(f"{summary} Thank you for calling AgroSat.")
        if digits == "3":
            return self.prompt(
                "Carbon Credit Program: Earn money for sustainable farming practices. "
                "Press 1 to opt in, Press 2 for more information.",
                gather_action("carbon_optin", farmer),
            )
        if digits == "0":
            return self.connect_agent()
        return self.say_and_hang_up("Invalid selection. Thank you for calling AgroSat. Goodbye.")

    def connect_agent(self) -> str:
        if not settings.SUPPORT_PHONE_NUMBER:
            return self.say_and_hang_up(
                "All of our agents are currently unavailable. Please call again later. Goodbye."
            )
        response = VoiceResponse()
        response.say("Connecting you to an AgroSat agent.", voice=VOICE)
        response.dial(settings.SUPPORT_PHONE_NUMBER)
        return str(response)

    async def record_crop_condition(self, farmer: Farmer, digits: Optional[str]) -> str:
        condition = int(digits) if digits and digits.isdigit() else 0
        if condition not in CONDITION_NAMES:
            return self.say_and_hang_up("Invalid selection. Thank you for calling AgroSat. Goodbye.")

        name = CONDITION_NAMES[condition]
        await self.call_log.log(
            farmer.id,
            CallStatus.COMPLETED,
            CallType.TRADITIONAL_IVR,
            transcript=f"Farmer reported crop condition: {name}",
            crop_selected=farmer.crop or "Unknown",
            crop_condition=condition,
        )
        return self.say_and_hang_up(
            f"Thank you for reporting your crop condition as {name}. "
            "This information helps us provide better insights. Goodbye."
        )

    async def carbon_opt_in(self, farmer: Farmer, digits: Optional[str]) -> str:
        if digits == "2":
            return self.say_and_hang_up(
                "The AgroSat Carbon Credit Program pays you for sustainable practices such as no-till farming, "
                "cover cropping and agroforestry. Credits are verified by our field team and sold to buyers. "
                "Call again and press 3 then 1 to enroll. Goodbye."
            )
        if digits != "1":
            return self.say_and_hang_up("Invalid selection. Thank you for calling AgroSat. Goodbye.")

        credit = await self.carbon_service.enroll_from_ivr(farmer)
        if credit is None:
            return self.say_and_hang_up(
                "You are already enrolled in our Carbon Credit Program. Thank you for calling AgroSat. Goodbye."
            )
        await self.call_log.log(
            farmer.id,
            CallStatus.COMPLETED,
            CallType.TRADITIONAL_IVR,
            transcript=f"Farmer opted in to carbon credit program. Registry ID: {credit.registry_id}",
            crop_selected=farmer.crop,
            opted_in_carbon=True,
        )
        return self.say_and_hang_up(
            "Congratulations! You have been enrolled in our Carbon Credit Program. "
            "Our team will contact you within 48 hours to verify your sustainable practices. "
            "Thank you for helping fight climate change."
        )


def get_ivr_service(
    farmer_service: FarmerService = Depends(get_farmer_service),
    call_log: CallLogService = Depends(get_call_log_service),
    carbon_service: CarbonCreditService = Depends(get_carbon_credit_service),
    weather_service: WeatherService = Depends(get_weather_service),
):
    return IvrService(farmer_service, call_log, carbon_service, weather_service)

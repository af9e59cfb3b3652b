"""Onboarding wizard schemas - one model per step, defaults match a fresh form"""

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

Number = Union[int, float, str]
Numeric = Union[int, float]

STEP_TITLES = {
    1: "Business Basics",
    2: "Contacts",
    3: "Hours",
    4: "Booking Rules",
    5: "Services",
    6: "Staff",
    7: "Phone Routing",
    8: "Calendar",
    9: "Consent & Templates",
    10: "Website & Go-Live",
}
TOTAL_STEPS = len(STEP_TITLES)

CONTACT_METHODS = [
    {"value": "email", "label": "Email"},
    {"value": "sms", "label": "SMS"},
    {"value": "phone", "label": "Phone Call"},
]

SERVICE_CATEGORIES = [
    "Haircut",
    "Hair Color",
    "Hair Treatment",
    "Styling",
    "Beard Trim",
    "Facial",
    "Massage",
    "Manicure",
    "Pedicure",
    "Waxing",
    "Other",
]

STAFF_ROLES = [
    "Owner-Admin",
    "Manager",
    "Stylist",
    "Barber",
    "Therapist",
    "Technician",
    "Assistant",
    "Other",
]

NO_SHOW_POLICIES = [
    {"value": "none", "label": "No Action", "description": "No penalty for no-shows"},
    {"value": "fee", "label": "Charge Fee", "description": "Charge a fee for no-shows"},
    {"value": "block", "label": "Block Customer", "description": "Block customer from future bookings"},
]

PHONE_ACTIONS = [
    {"value": "keep", "label": "Keep Current Number", "description": "Continue using your existing phone number"},
    {"value": "port", "label": "Port to Avella", "description": "Transfer your existing number to Avella system"},
    {"value": "new", "label": "Get New Number", "description": "Get a new phone number from Avella"},
]

AFTER_HOURS_OPTIONS = [
    {"value": "ai", "label": "AI Assistant", "description": "AI will handle calls and take messages"},
    {"value": "voicemail", "label": "Voicemail", "description": "Calls go directly to voicemail"},
    {"value": "forward", "label": "Forward to Number", "description": "Forward calls to another number"},
]

CALENDAR_PROVIDERS = [
    {"value": "none", "label": "No Calendar Integration", "description": "Use Avella's built-in calendar system only"},
    {"value": "google", "label": "Google Calendar", "description": "Sync with Google Calendar for staff members"},
    {"value": "microsoft", "label": "Microsoft Outlook", "description": "Sync with Microsoft Outlook/Office 365"},
    {"value": "avella", "label": "Avella Calendar", "description": "Use Avella's advanced calendar features"},
]

WEEK_DAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
DEFAULT_OPEN_TIME = "09:00"
DEFAULT_CLOSE_TIME = "18:00"

DEFAULT_PLAN = {"tier": "Starter", "setupFeeApproved": False, "monthly": 0}


class StepModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


# Step 1
class Address(StepModel):
    city: str = ""
    state: str = ""
    country: str = "United States"


class BusinessBasics(StepModel):
    legalName: str = ""
    brandName: str = ""
    timezone: str = "America/New_York"
    phone: str = ""
    email: str = ""
    address: Address = Field(default_factory=Address)


# Step 2
class OwnerContact(StepModel):
    name: str = ""
    title: str = ""
    email: str = ""
    mobile: str = ""
    preferredContact: str = "email"


class RedirectContact(StepModel):
    name: str = ""
    title: str = ""
    email: str = ""
    phone: str = ""
    responsibilities: list[str] = []


class BillingContact(StepModel):
    name: str = ""
    email: str = ""
    phone: str = ""
    address: str = ""


class ContactsStep(StepModel):
    owner: OwnerContact = Field(default_factory=OwnerContact)
    redirect: RedirectContact = Field(default_factory=RedirectContact)
    billing: BillingContact = Field(default_factory=BillingContact)


# Step 3
class DayHours(StepModel):
    day: str
    isOpen: bool = False
    open: Optional[str] = None
    close: Optional[str] = None


def default_week() -> list[DayHours]:
    return [
        DayHours(day=day, isOpen=True, open=DEFAULT_OPEN_TIME, close=DEFAULT_CLOSE_TIME)
        for day in WEEK_DAYS[:6]
    ] + [DayHours(day="Sun", isOpen=False)]


class HoursStep(StepModel):
    hours: list[DayHours] = Field(default_factory=default_week)


class ApplyHoursRequest(StepModel):
    isOpen: bool
    open: Optional[str] = None
    close: Optional[str] = None
    hours: list[dict[str, Any]] = []


# Step 4
class NoShowPolicy(StepModel):
    type: str = "none"
    value: Numeric = 0


class BookingRules(StepModel):
    minLeadHours: Numeric = 2
    maxLeadDays: Numeric = 60
    sameDay: bool = True
    sameDayCutoff: Optional[str] = "16:00"
    cancelWindowHours: Numeric = 24
    noShowPolicy: NoShowPolicy = Field(default_factory=NoShowPolicy)


class RulesStep(StepModel):
    rules: BookingRules = Field(default_factory=BookingRules)


# Step 5
class ServiceItem(StepModel):
    name: str = ""
    duration: Number = 30
    price: Number = 0
    category: str = ""
    bufferBeforeMin: Number = 0
    bufferAfterMin: Number = 0


class ServicesStep(StepModel):
    services: list[ServiceItem] = []


# Step 6
class StaffMember(StepModel):
    name: str = ""
    email: str = ""
    role: str = ""
    servicesAssigned: list[str] = []
    calendarConnected: bool = False


class StaffStep(StepModel):
    staff: list[StaffMember] = []


class ToggleServiceRequest(StepModel):
    servicesAssigned: list[str] = []
    service: str


# Step 7
class PhoneRouting(StepModel):
    currentNumber: str = ""
    action: str = "keep"
    afterHours: str = "ai"
    onCallNumber: str = ""


class PhoneStep(StepModel):
    phone: PhoneRouting = Field(default_factory=PhoneRouting)


# Step 8
class CalendarConfig(StepModel):
    provider: str = "none"
    staffToConnect: list[str] = []


class CalendarStep(StepModel):
    calendar: CalendarConfig = Field(default_factory=CalendarConfig)


# Step 9
class Consent(StepModel):
    smsClient: bool = True
    dataShare: bool = True


class ConsentStep(StepModel):
    consent: Consent = Field(default_factory=Consent)
    autoInstallTemplates: bool = True


# Step 10
class Website(StepModel):
    slug: str = ""
    bookingPath: str = ""
    publicUrl: str = ""


class WebsiteStep(StepModel):
    website: Website = Field(default_factory=Website)
    goLiveDate: str = ""


class SlugRequest(StepModel):
    slug: str = ""


STEP_MODELS: dict[int, type[StepModel]] = {
    1: BusinessBasics,
    2: ContactsStep,
    3: HoursStep,
    4: RulesStep,
    5: ServicesStep,
    6: StaffStep,
    7: PhoneStep,
    8: CalendarStep,
    9: ConsentStep,
    10: WebsiteStep,
}


class WizardState(BaseModel):
    """Wizard progress kept in the server-side session"""

    current_step: int = 1
    form_data: dict[str, Any] = {}
    show_final_review: bool = False

from .finance_models import (
    WhatsAppMessage,
    FinanceRecordCreate,
    FinanceRecord,
    DailyTotals,
    FinanceSummary,
)
from .clinic_models import (
    LoginRequest,
    ClinicFeatures,
    ClinicSession,
    AdminAuthRequest,
    AdminAuthResponse,
    ClinicCreate,
    Clinic,
    WhatsAppNumberCreate,
    WhatsAppNumber,
)
from .care_models import (
    Doctor,
    DoctorCreate,
    DoctorUpdate,
    Appointment,
    AppointmentCreate,
    Feedback,
    FeedbackCreate,
    FeedbackSummary,
    ProfessionalRating,
)

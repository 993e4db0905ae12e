# ===============================
# File: discharge_engine/parsers/headers.py
# ===============================
"""Header vocabulary of the simplified (AI-generated) discharge markup.

Each semantic key maps to the literal spellings seen per locale. A document
may mix languages freely: every key compiles to one alternation over all
locales, so recognition is per header and never per document.
Supporting a new language only means adding its literals here.
"""
import re
from typing import Dict, List, Pattern

HEADER_SYNONYMS: Dict[str, Dict[str, List[str]]] = {
    # ---- summary ----
    "overview": {
        "en": ["Overview"],
        "es": ["Resumen"],
        "fr": ["Aperçu"],
        "hi": ["अवलोकन"],
        "vi": ["Tổng quan"],
        "ps": ["لنډیز"],
    },
    "reasons_for_stay": {
        "en": ["Reasons for Hospital Stay", "Reason for Hospital Stay"],
        "es": ["Motivo de la Hospitalización", "Motivos de la Hospitalización"],
        "fr": ["Raison de l'Hospitalisation", "Raisons de l'Hospitalisation"],
        "hi": ["अस्पताल में रहने का कारण"],
        "vi": ["Lý do Nhập viện"],
    },
    "what_happened": {
        "en": ["What Happened During Your Stay"],
        "es": ["Qué Pasó Durante su Estadía"],
        "fr": ["Ce qui s'est Passé Pendant votre Séjour"],
        "hi": ["आपके रहने के दौरान क्या हुआ"],
        "vi": ["Điều gì Đã xảy ra Trong thời gian Nằm viện"],
    },
    # ---- instructions ----
    "medications": {
        "en": ["Your Medications", "Medications", "Your Medication"],
        "es": ["Sus Medicamentos", "Medicamentos", "Su Medicamento"],
        "fr": ["Vos Médicaments", "Médicaments", "Votre Médicament"],
        "hi": ["आपकी दवाएं", "दवाएं"],
        "vi": ["Thuốc của Bạn", "Thuốc"],
        "ps": ["ستاسو درمل", "درمل"],
    },
    "appointments": {
        "en": ["Upcoming Appointments", "Appointments", "Follow-up Appointments"],
        "es": ["Próximas Citas", "Citas", "Citas de Seguimiento"],
        "fr": ["Rendez-vous à Venir", "Rendez-vous", "Rendez-vous de Suivi"],
        "hi": ["आगामी अपॉइंटमेंट", "अपॉइंटमेंट"],
        "vi": ["Cuộc hẹn Sắp tới", "Cuộc hẹn"],
        "ps": ["راتلونکي ناستې", "ناستې"],
    },
    "diet_activity": {
        "en": ["Diet & Activity", "Diet and Activity", "Diet & Activities"],
        "es": ["Dieta y Actividad", "Dieta y Actividades", "Alimentación y Actividad"],
        "fr": ["Régime et Activité", "Régime et Activités", "Alimentation et Activité"],
        "hi": ["आहार और गतिविधि"],
        "vi": ["Chế độ ăn & Hoạt động"],
        "ps": ["خوراک او فعالیت", "خوراک او فعالیتونه"],
    },
    "warning_signs": {
        "en": ["Warning Signs", "Warning Sign", "Warning Symptoms"],
        "es": [
            "Señales de Advertencia",
            "Señal de Advertencia",
            "Síntomas de Advertencia",
            "Señales de Alerta",
        ],
        "fr": ["Signes d'Alerte", "Signe d'Alerte", "Symptômes d'Alerte"],
        "hi": ["चेतावनी के संकेत"],
        "vi": ["Dấu hiệu cảnh báo"],
        "ps": ["د خطر نښې", "د خطر نښانې"],
    },
    # ---- diet & activity subheaders ----
    "foods_to_include": {
        "en": ["Foods to Include"],
        "es": ["Alimentos a Incluir"],
        "fr": ["Aliments à Inclure"],
        "hi": ["शामिल करने वाले खाद्य पदार्थ"],
        "vi": ["Thực phẩm Nên ăn"],
    },
    "foods_to_limit": {
        "en": ["Foods to Limit"],
        "es": ["Alimentos a Limitar"],
        "fr": ["Aliments à Limiter"],
        "hi": ["सीमित करने वाले खाद्य पदार्थ"],
        "vi": ["Thực phẩm Hạn chế"],
    },
    "recommended_activities": {
        "en": ["Recommended Activities"],
        "es": ["Actividades Recomendadas"],
        "fr": ["Activités Recommandées"],
        "hi": ["अनुशंसित गतिविधियां"],
        "vi": ["Hoạt động Được khuyến nghị"],
    },
    "activities_to_avoid": {
        "en": ["Activities to Avoid"],
        "es": ["Actividades a Evitar"],
        "fr": ["Activités à Éviter"],
        "hi": ["बचने वाली गतिविधियां"],
        "vi": ["Hoạt động Nên tránh"],
    },
    # ---- warning signs subheaders ----
    "call_911": {
        "en": ["When to Seek Help - Call 911", "Call 911 Immediately If You Experience"],
        "es": ["Llame al 911 Inmediatamente Si Experimenta"],
        "fr": ["Appelez le 911 Immédiatement Si Vous Ressentez"],
        "hi": ["यदि आप अनुभव करते हैं तो तुरंत 911 पर कॉल करें"],
        "vi": ["Gọi 911 Ngay lập tức Nếu Bạn Gặp"],
    },
    "call_doctor": {
        "en": ["When to Call Your Doctor", "Call Your Doctor If You Notice"],
        "es": ["Llame a su Médico Si Nota"],
        "fr": ["Appelez votre Médecin Si Vous Remarquez"],
        "hi": ["यदि आप नोटिस करते हैं तो अपने डॉक्टर को कॉल करें"],
        "vi": ["Gọi Bác sĩ Nếu Bạn Nhận thấy"],
    },
    "emergency_contacts": {
        "en": ["Emergency Contacts"],
        "es": ["Contactos de Emergencia"],
        "fr": ["Contacts d'Urgence"],
        "hi": ["आपातकालीन संपर्क"],
        "vi": ["Liên hệ Khẩn cấp"],
    },
    # ---- medications table columns ----
    "medication_table": {
        "en": ["Medicine Name", "Frequency", "When to Take", "Special Instructions"],
        "es": ["Nombre del Medicamento", "Frecuencia", "Cuándo Tomar", "Instrucciones Especiales"],
        "fr": ["Nom du Médicament", "Fréquence", "Quand Prendre", "Instructions Spéciales"],
        "hi": ["दवा का नाम", "आवृत्ति", "कब लें", "विशेष निर्देश"],
        "vi": ["Tên Thuốc", "Tần suất", "Khi nào Uống", "Hướng dẫn Đặc biệt"],
    },
}

# Top-level ``##`` sections, in document order
SECTION_KEYS = ("overview", "medications", "appointments", "diet_activity", "warning_signs")

_DASHES = "-–—"
_QUOTES = "'’"


def literals(key: str) -> List[str]:
    """All spellings of ``key``, longest first, duplicates removed."""
    seen = {}
    for words in HEADER_SYNONYMS[key].values():
        for w in words:
            seen.setdefault(w.strip().rstrip(":").strip(), None)
    return sorted(seen, key=len, reverse=True)


def _literal_regex(literal: str) -> str:
    out = []
    for ch in literal:
        if ch.isspace():
            if not out or out[-1] != r"\s+":
                out.append(r"\s+")
        elif ch in _DASHES:
            out.append("[" + _DASHES + "]")
        elif ch in _QUOTES:
            out.append("[" + _QUOTES + "]")
        else:
            out.append(re.escape(ch))
    return "".join(out)


def alternation(key: str) -> str:
    """One regex alternation matching ``key`` in any locale."""
    return "|".join(_literal_regex(w) for w in literals(key))


def section_header(key: str) -> Pattern:
    """``## <header>`` alone on its line (bold and trailing colon tolerated)."""
    return re.compile(
        r"^[ \t]*#{1,2}(?!#)[ \t]+(?:\*\*)?[ \t]*(?:" + alternation(key) + r")"
        r"[ \t]*:?[ \t]*(?:\*\*)?[ \t]*:?[ \t]*$",
        re.IGNORECASE | re.MULTILINE,
    )


def subsection_header(key: str) -> Pattern:
    """``**<header>**`` or ``### <header>`` alone on its line."""
    body = alternation(key)
    return re.compile(
        r"^[ \t]*(?:\*\*[ \t]*(?:" + body + r")[ \t]*:?[ \t]*\*\*"
        r"|#{3,6}[ \t]+(?:" + body + r"))[ \t]*:?[ \t]*$",
        re.IGNORECASE | re.MULTILINE,
    )


# Any h1/h2 header: the end of a ``##`` section
ANY_SECTION = re.compile(r"^[ \t]*#{1,2}(?!#)[ \t]+\S", re.MULTILINE)

# Any standalone bold line or h3+ header: the end of a ``**`` subsection
ANY_SUBSECTION = re.compile(
    r"^[ \t]*(?:\*\*[^*\n]+\*\*[ \t]*:?[ \t]*$|#{3,6}[ \t]+\S)", re.MULTILINE
)

SECTION_HEADERS: Dict[str, Pattern] = {key: section_header(key) for key in SECTION_KEYS}

TABLE_KEYWORDS: List[str] = literals("medication_table")

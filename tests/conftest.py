# flake8: noqa
import pytest

# ----------------- Sample documents -----------------

STEMI_SUMMARY = """Patient Name: Jane Roe
MRN: 00451234
DOB: 03/14/1958
Admit Date: 10/01/2025
Discharge Date: 10/05/2025
Attending Physician: Dr. Alan Park, MD (ID: 4411)
Service: Cardiology

Admitting Diagnosis (ICD-10):
● ST-elevation myocardial infarction of anterior wall (I21.09)
● Hyperlipidemia (E78.5)

Discharge Diagnosis:
● Anterior STEMI s/p PCI with DES to proximal LAD
● Hyperlipidemia

Hospital Course:
Patient presented with crushing chest pain. Emergent PCI with DES to proximal LAD.

Pertinent Results:
● Admission troponin I: 12.3 ng/mL → peak 28.0 → 5.2 at discharge
● CBC: Hb 13.1, Plt 245
● BMP: Na 138, K 4.2, Cr 0.9
● Lipid panel: LDL 162, HDL 38, TG 190
● HbA1c: 5.9%
EKG:
● Anterior ST elevations, resolved post-PCI

Condition at Discharge:
● Vitals: T 98.2°F, HR 76, RR 18, BP 122/70, SpO₂ 97% RA
● Stable, ambulating independently

Discharge Medications:
New:
● Aspirin 81 mg PO daily (indefinitely)
● Ticagrelor 90 mg PO BID
● Atorvastatin 80 mg PO nightly
Continued:
● Lisinopril 10 mg PO daily
Stopped:
● Ibuprofen 400 mg PO PRN

Follow-Up Appointments:
● Cardiology clinic in 1 week for post-MI follow-up and med titration
● Cardiac rehab referral

Diet and Lifestyle Instructions:
● Heart-healthy low sodium diet
● No heavy lifting > 10 lbs for 2 weeks
● Walking 10-15 minutes twice daily

Patient Instructions (Clinical Style):
Take all medications as prescribed. Do not stop ticagrelor without talking to cardiology.

Return Precautions:
Return to ED if:
● Chest pain or pressure
● Shortness of breath
"""

DEFAULT_SUMMARY = """DISCHARGE SUMMARY

Patient Name: John Smith
MRN: 12345678
DOB: 01/15/1960
Admission Date: 2025-03-01
Discharge Date: 2025-03-05
Attending Physician: Dr. Sarah Lee
Service: Internal Medicine

Discharge Diagnosis:
- Community-acquired pneumonia (J18.9)
- Type 2 diabetes mellitus (E11.9)

Hospital Course:
Admitted with fever and productive cough. Treated with IV ceftriaxone and transitioned to oral antibiotics.

Lab Results:
- WBC: 8.9 K/uL
- Hemoglobin: 11.2 g/dL
- HbA1c: 8.2 %

Vital Signs:
BP 128/74, HR 88, RR 18, Temp 98.1 F, SpO2 95%

Discharge Medications:
- Levofloxacin 750 mg PO daily x 5 days
- Metformin 1000 mg PO BID

Follow-up Appointments:
- Primary care in 1 week for repeat labs
- Pulmonology in 2-3 weeks

Diet:
Diabetic diet, avoid concentrated sugars.

Activity:
Walk daily as tolerated. No driving while on cough medicine.

Return Precautions:
- Fever above 101 F
- Worsening shortness of breath
"""

DEFAULT_INSTRUCTIONS = """### **Discharge Medications:**

* Levofloxacin 750 mg PO daily x 5 days
* Metformin 1000 mg PO BID

### **Follow-Up Appointments:**

* PCP in 1 week with repeat CBC, BMP

### **Return Precautions:**

* Fever or chills
"""

UNSTRUCTURED = "Thank you for choosing our hospital.\nPlease call us with any questions.\n"


@pytest.fixture
def stemi_summary():
    return STEMI_SUMMARY


@pytest.fixture
def default_summary():
    return DEFAULT_SUMMARY


@pytest.fixture
def default_instructions():
    return DEFAULT_INSTRUCTIONS


@pytest.fixture
def unstructured_text():
    return UNSTRUCTURED


@pytest.fixture
def tenant_cfg():
    return {
        "default_parsers": ["default"],
        "tenants": {
            "default-tenant": {"parsers": ["default"]},
            "hospital-a": {
                "parsers": ["default"],
                "settings": {"strict_validation": True, "require_medications": True},
            },
            "demo": {"parsers": ["stemi", "default"]},
        },
    }

"""
Regulatory readiness question bank.

Sections apply to every permission unless ``applicable_to`` lists the
permission codes they are limited to. A question with ``conditional_on``
is only visible when the referenced answer (question response first, firm
basics second) matches ``values`` or avoids ``not_values``.
"""

_READINESS_SCALE = [
    {"value": 0, "label": "Not started"},
    {"value": 1, "label": "Planned, not documented"},
    {"value": 2, "label": "Documented with gaps"},
    {"value": 3, "label": "Complete and evidenced"},
]


def _scale(qid, question, weight, *, required=True, fca_reference=None, options=None,
           conditional_on=None, critical=False):
    return {
        "id": qid,
        "type": "scale",
        "question": question,
        "options": options or _READINESS_SCALE,
        "weight": weight,
        "required": required,
        "critical": critical,
        "fca_reference": fca_reference,
        "conditional_on": conditional_on,
    }


QUESTION_SECTIONS = [
    {
        "id": "people-capability",
        "title": "People & Capability",
        "description": "Assessment of key personnel, UK presence, and organizational capability",
        "applicable_to": None,
        "questions": [
            _scale(
                "pc-001",
                "Do you have at least two UK-resident directors who will dedicate 50%+ of their time to the firm?",
                3, critical=True, fca_reference="COND 2.3 - Location of Offices",
                options=[
                    {"value": 0, "label": "No UK-resident directors identified"},
                    {"value": 1, "label": "One UK director, or directors with <50% time commitment"},
                    {"value": 2, "label": "Two UK directors identified but time allocation unclear"},
                    {"value": 3, "label": "Two+ UK directors with documented 50%+ time commitment"},
                ],
            ),
            _scale(
                "pc-002",
                "Have suitability assessments (fit and proper) been completed for all proposed SMF holders?",
                3, critical=True, fca_reference="FIT 1.3 - Criteria for assessing fitness and propriety",
            ),
            _scale(
                "tc-001",
                "Can the FCA effectively supervise your firm given its structure and activities?",
                3, critical=True, fca_reference="COND 2.4 - Effective Supervision",
            ),
            _scale(
                "pc-003",
                "Is your ownership and controllers chart complete with all persons with >10% control identified?",
                2, fca_reference="SUP 11 - Controllers and Close Links",
            ),
            _scale("pc-004", "Do you have a resourcing plan addressing skills and capacity gaps?", 2),
            _scale(
                "pc-005",
                "Are staff incentive structures aligned to good customer outcomes (not purely volume-driven)?",
                1, required=False, fca_reference="SYSC 19D - Remuneration Code",
            ),
        ],
    },
    {
        "id": "financial-crime",
        "title": "Financial Crime Prevention",
        "description": "AML/CTF framework, MLRO appointment, and financial crime controls",
        "applicable_to": None,
        "questions": [
            _scale(
                "fc-001",
                "Has an MLRO been appointed with a firm-wide risk assessment and documented AML procedures?",
                3, critical=True, fca_reference="SYSC 6.3.9R - Money laundering reporting function",
            ),
            _scale(
                "fc-002", "Are CDD/EDD procedures documented with clear escalation criteria?",
                2, fca_reference="MLR 2017 Regulation 28-33",
            ),
            _scale(
                "fc-003",
                "Are screening tools and transaction monitoring calibrated to your products and customer base?",
                2, fca_reference="FCG 3 - Financial crime systems and controls",
            ),
            _scale(
                "fc-004", "Is there a documented staff AML/CTF training program with completion records?",
                1, fca_reference="MLR 2017 Regulation 24",
            ),
        ],
    },
    {
        "id": "operational-resilience",
        "title": "Operational Resilience",
        "description": "Important business services, outsourcing, IT security, and continuity",
        "applicable_to": None,
        "questions": [
            _scale(
                "or-001", "Have you identified your Important Business Services (IBS) with impact tolerances?",
                2, fca_reference="PS21/3 - Building operational resilience",
            ),
            _scale(
                "or-002",
                "Do critical outsourcing arrangements have due diligence, contracts with exit plans, "
                "and oversight KPIs?",
                2, fca_reference="SYSC 8 - Outsourcing",
            ),
            _scale(
                "or-003",
                "Are IT security controls documented (access management, logging, vulnerability management, "
                "incident response)?",
                2, fca_reference="SYSC 13.7 - Information security",
            ),
            _scale(
                "or-004", "Is there a tested Business Continuity Plan (BCP) and Disaster Recovery (DR) capability?",
                2, fca_reference="SYSC 4.1.6R - Business continuity",
            ),
        ],
    },
    {
        "id": "consumer-duty",
        "title": "Consumer Duty & Conduct",
        "description": "Consumer Duty compliance, fair value, and customer outcomes monitoring",
        "applicable_to": None,
        "questions": [
            _scale(
                "cd-001",
                "Have you defined your target market and completed a fair value assessment for each product?",
                3, fca_reference="PRIN 2A - Consumer Duty",
            ),
            _scale(
                "cd-002", "Do you have a process for financial promotions approval with record-keeping?",
                2, fca_reference="BCOBS 2.1 - Communications with banking customers",
            ),
            _scale(
                "cd-003", "Is there a vulnerable customer policy with staff training and accommodation procedures?",
                2, fca_reference="FG21/1 - Fair treatment of vulnerable customers",
            ),
            _scale(
                "cd-004", "Do you have a complaints handling procedure aligned to DISP with root-cause analysis?",
                2, fca_reference="DISP 1 - Treating complainants fairly",
            ),
        ],
    },
    {
        "id": "data-protection",
        "title": "Data Protection",
        "description": "GDPR compliance, data processing, and privacy controls",
        "applicable_to": None,
        "questions": [
            _scale(
                "dp-001",
                "Have you documented lawful bases for all processing activities with a Record of Processing "
                "Activities (ROPA)?",
                2, fca_reference="GDPR Article 30",
            ),
            _scale(
                "dp-002", "Are technical and organizational measures (TOMs) documented with a breach response plan?",
                2, fca_reference="GDPR Article 32-34",
            ),
            _scale(
                "dp-003", "Do data retention schedules exist with documented deletion procedures?",
                1, fca_reference="GDPR Article 5(1)(e) - Storage limitation",
            ),
        ],
    },
    {
        "id": "payments-specific",
        "title": "Payment Services Specific",
        "description": "Safeguarding, SCA, agents, and scheme access for payment and e-money firms",
        "applicable_to": ["payments", "emoney"],
        "questions": [
            {
                "id": "ps-001",
                "type": "multi-select",
                "question": "What payment services will you provide?",
                "options": [
                    {"value": "money-remittance", "label": "Money Remittance"},
                    {"value": "payment-initiation", "label": "Payment Initiation Services (PISP)"},
                    {"value": "account-information", "label": "Account Information Services (AISP)"},
                    {"value": "payment-accounts", "label": "Payment Accounts (execution, acquiring)"},
                    {"value": "card-issuing", "label": "Card Issuing"},
                    {"value": "merchant-acquiring", "label": "Merchant Acquiring"},
                ],
                "weight": 3,
                "required": True,
                "critical": False,
                "fca_reference": "PSRs 2017 Schedule 1",
                "conditional_on": None,
            },
            {
                "id": "ps-002",
                "type": "single-select",
                "question": "Are you applying as a Payment Institution (PI) or E-Money Institution (EMI)?",
                "options": [
                    {"value": "pi", "label": "Payment Institution (PI)"},
                    {"value": "emi", "label": "E-Money Institution (EMI)"},
                    {"value": "small-pi", "label": "Small Payment Institution (under EUR 3m/month)"},
                    {"value": "small-emi", "label": "Small EMI (under EUR 5m outstanding)"},
                ],
                "weight": 3,
                "required": True,
                "critical": True,
                "fca_reference": "PSRs 2017 Regulation 6-7",
                "conditional_on": None,
            },
            {
                "id": "ps-003",
                "type": "single-select",
                "question": "What is your safeguarding approach for customer funds?",
                "options": [
                    {"value": "segregation", "label": "Segregation in separate account at credit institution"},
                    {"value": "insurance", "label": "Insurance or guarantee from authorized insurer/credit institution"},
                    {"value": "mixed", "label": "Combination of segregation and insurance"},
                    {"value": "not-applicable", "label": "Not applicable (AISP only)"},
                ],
                "weight": 3,
                "required": True,
                "critical": True,
                "fca_reference": "PSRs 2017 Regulation 23",
                "conditional_on": {"question_id": "ps-001", "not_values": ["account-information"]},
            },
            _scale(
                "ps-004", "Do you perform daily safeguarding reconciliations with shortfall and excess procedures?",
                3, critical=True, fca_reference="CASS 7.13 / Approach Document Chapter 10",
                conditional_on={"question_id": "ps-003", "not_values": ["not-applicable"]},
            ),
            _scale(
                "ps-005", "Is Strong Customer Authentication implemented with documented exemptions?",
                2, fca_reference="PSRs 2017 Regulation 100 / PSD2 RTS on SCA",
                conditional_on={"question_id": "ps-001", "values": ["payment-initiation", "payment-accounts"]},
            ),
            _scale(
                "ps-006", "Do you have an agent and distributor oversight framework?",
                2, fca_reference="PSRs 2017 Regulation 34-37",
                conditional_on={"question_id": "ps-001", "values": ["money-remittance", "payment-accounts"]},
            ),
            _scale(
                "ps-008", "Do you have fraud prevention and transaction monitoring systems in place?",
                2, fca_reference="PSRs 2017 Regulation 98",
            ),
            _scale(
                "ps-009", "Have you defined execution times and cut-off times compliant with PSRs requirements?",
                1, fca_reference="PSRs 2017 Regulation 86",
            ),
            _scale(
                "ps-010", "Do you have arrangements for authorized push payment (APP) fraud reimbursement?",
                2, fca_reference="PSR PS23/3 - APP Fraud Reimbursement",
                conditional_on={"question_id": "ps-001", "values": ["payment-accounts", "money-remittance"]},
            ),
            {
                "id": "ps-011",
                "type": "single-select",
                "question": "Do you have payment scheme memberships or sponsorship arrangements in place?",
                "options": [
                    {"value": "direct", "label": "Direct scheme membership"},
                    {"value": "sponsored", "label": "Sponsored access via bank"},
                    {"value": "both", "label": "Mix of direct and sponsored"},
                    {"value": "not-required", "label": "Not required for my services"},
                ],
                "weight": 2,
                "required": True,
                "critical": False,
                "fca_reference": None,
                "conditional_on": {
                    "question_id": "ps-001",
                    "values": ["payment-accounts", "card-issuing", "merchant-acquiring"],
                },
            },
            _scale(
                "ps-012", "Do you have arrangements for safeguarding audits (annual for EMIs, as needed for PIs)?",
                2, fca_reference="SUP 16.12 - Integrated Regulatory Reporting",
                conditional_on={"question_id": "ps-002", "values": ["emi"]},
            ),
        ],
    },
]


def get_question(question_id: str):
    for section in QUESTION_SECTIONS:
        for question in section["questions"]:
            if question["id"] == question_id:
                return question
    return None

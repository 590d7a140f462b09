"""
FCA Authorised Payment Institution (API) documentation checklist.

Static categories of FCA Connect submission items grouped by timeline
phase, plus pure completion helpers over a caller-supplied
``{item_id: status}`` map.
"""

from authpack.utils.helpers import percent

CHECKLIST_STATUSES = (
    "not_started",
    "in_progress",
    "draft_ready",
    "reviewed",
    "final_ready",
    "submitted",
)

DEFAULT_COMPLETED_STATUSES = ("final_ready", "submitted")

TIMELINE_PHASES = [
    {"id": "assessment", "name": "Assessment & Scoping", "start_week": 1, "end_week": 2},
    {"id": "narrative", "name": "Narrative & Business Plan", "start_week": 3, "end_week": 16},
    {"id": "policies", "name": "Policies & Controls", "start_week": 17, "end_week": 37},
    {"id": "governance", "name": "Governance & SMCR", "start_week": 21, "end_week": 53},
    {"id": "submission", "name": "Review & Submission", "start_week": 54, "end_week": 56},
]

PHASE_TO_CATEGORY_MAP = {
    "Assessment & Scoping": ["connect-forms", "corporate-legal"],
    "Narrative & Business Plan": ["programme-operations", "business-plan-financials", "capital-own-funds"],
    "Policies & Controls": ["safeguarding", "it-security", "aml-ctf", "policies-procedures"],
    "Governance & SMCR": ["governance-controls", "outsourcing-structure"],
    "Review & Submission": [],
}


def _item(item_id, label, description, fca_reference=None, applicability=None):
    return {
        "id": item_id,
        "label": label,
        "description": description,
        "fca_reference": fca_reference,
        "applicability": applicability,
    }


FCA_API_CHECKLIST = [
    {
        "id": "connect-forms",
        "title": "Connect Submission Forms",
        "phase": "Assessment & Scoping",
        "items": [
            _item("api-form", "API Application Form",
                  "Authorisation as a Payment Institution - primary application form with answers to all sections.",
                  "FCA Connect API application form"),
            _item("psd-individuals", "Individuals Form for PIs (PSD Individual)",
                  "Registers individuals responsible for managing the PI - one form per director and manager.",
                  "FCA PI applicants page"),
            _item("qualifying-holdings", "Qualifying holding (controller) forms",
                  "Registers each person/firm with 10%+ holding - forms vary by controller type.",
                  "FCA Controllers forms"),
            _item("main-contact", "Main contact details",
                  "Internal individual designated as main contact for the application.",
                  "FCA Connect contact section"),
            _item("na-explanations", "Explanation for any 'not applicable' answers",
                  "Written justification for any sections marked as not applicable.",
                  "Application supporting document"),
        ],
    },
    {
        "id": "corporate-legal",
        "title": "Corporate & Legal",
        "phase": "Assessment & Scoping",
        "items": [
            _item("cert-incorporation", "Certificate of Incorporation",
                  "Companies House certificate proving legal entity registration.", "SUP 6.3"),
            _item("articles-association", "Articles of Association",
                  "Current articles governing the company's operations.", "SUP 6.3"),
            _item("partnership-agreement", "Partnership agreement deeds",
                  "Partnership documentation if applicant is a partnership.",
                  applicability="If applicable - partnerships only"),
            _item("llp-agreement", "LLP agreement deeds",
                  "LLP members' agreement if applicant is an LLP.",
                  applicability="If applicable - LLPs only"),
        ],
    },
    {
        "id": "programme-operations",
        "title": "Programme of Operations & Agreements",
        "phase": "Narrative & Business Plan",
        "items": [
            _item("poo-document", "Programme of Operations (PoO) document",
                  "Detailed description of planned payment services, client types, and operational model.",
                  "PSR 5.4"),
            _item("flow-funds-diagram", "Flow of funds diagram",
                  "Visual representation of how funds move through the business.", "PSR 5.4"),
            _item("draft-contracts", "Draft contracts between parties",
                  "Template contracts with partners, agents, distributors.", "PSR 5.4"),
            _item("customer-framework", "Draft customer framework contract (T&Cs)",
                  "Terms and conditions for end customers using payment services.", "PSR 5.4, BCOBS"),
            _item("ancillary-services", "Ancillary services description",
                  "Description of any non-payment services offered alongside regulated activities.",
                  applicability="If applicable"),
            _item("credit-granting", "Credit granting model documentation",
                  "If offering credit related to payment services, detailed model and risk assessment.",
                  applicability="If applicable - credit granting PIs only"),
            _item("overseas-services", "Overseas services plan",
                  "Plan for passporting or providing services outside the UK.", applicability="If applicable"),
            _item("other-business", "Other business activities description + risk mitigation",
                  "Description of non-regulated business and how risks are managed.", "PSR 5.4"),
            _item("pii-calculation", "PII minimum calculation support",
                  "Professional indemnity insurance calculation if providing PIS/AIS services.",
                  "PSR 5.6", "If PIS/AIS only"),
        ],
    },
    {
        "id": "outsourcing-structure",
        "title": "Outsourcing & Structure",
        "phase": "Governance & SMCR",
        "items": [
            _item("org-chart", "Structural organisation description (org chart)",
                  "Organisational chart showing governance, reporting lines, and key functions.", "SYSC 4"),
            _item("outsourcing-register", "Outsourcing register / overview",
                  "Register of all outsourced functions with criticality assessment.", "SYSC 8"),
            _item("outsourcing-agreements", "Draft outsourcing agreements",
                  "Template or draft agreements with critical outsource providers.", "SYSC 8"),
        ],
    },
    {
        "id": "business-plan-financials",
        "title": "Business Plan & Financials",
        "phase": "Narrative & Business Plan",
        "items": [
            _item("business-plan", "Business plan (tailored)",
                  "Comprehensive business plan covering strategy, market, operations, and growth.", "PSR 5.4"),
            _item("marketing-plan", "Marketing plan",
                  "Go-to-market strategy and customer acquisition approach.", "PSR 5.4"),
            _item("historic-financials", "Historic financial statements",
                  "Audited accounts if business has trading history.", applicability="If available"),
            _item("financial-forecasts", "3-year financial forecasts + assumptions",
                  "Detailed P&L, balance sheet, and cash flow projections with documented assumptions.",
                  "PSR 5.4"),
            _item("stress-scenarios", "Stress / downside scenario forecasts",
                  "Financial projections under adverse conditions.", "PSR 5.4"),
            _item("own-funds-forecast", "Own funds forecast and capital calculations",
                  "Projected regulatory capital position over forecast period.", "PSR 5.5"),
            _item("transaction-forecasts", "Forecast volume/value of transactions",
                  "Projected payment volumes and values by service type.", "PSR 5.4"),
        ],
    },
    {
        "id": "capital-own-funds",
        "title": "Capital & Own Funds",
        "phase": "Narrative & Business Plan",
        "items": [
            _item("initial-capital", "Initial capital requirement selection and rationale",
                  "Justification for Method A, B, or C capital calculation choice.", "PSR 5.5"),
            _item("capital-evidence", "Evidence of initial capital",
                  "Bank statements or auditor confirmation of available capital.", "PSR 5.5"),
        ],
    },
    {
        "id": "safeguarding",
        "title": "Safeguarding",
        "phase": "Policies & Controls",
        "items": [
            _item("safeguarding-methodology", "Safeguarding methodology description",
                  "Detailed explanation of chosen safeguarding approach and processes.", "PSR 10"),
            _item("safeguarding-account", "Draft safeguarding account agreement",
                  "Agreement with bank for segregated safeguarding account.",
                  "PSR 10.2", "If Method 1 (segregation)"),
            _item("insurance-guarantee", "Draft insurance/guarantee agreement",
                  "Insurance policy or guarantee documentation.",
                  "PSR 10.3", "If Method 2 (insurance/guarantee)"),
        ],
    },
    {
        "id": "governance-controls",
        "title": "Governance & Controls",
        "phase": "Governance & SMCR",
        "items": [
            _item("governance-arrangements", "Governance arrangements document",
                  "Description of board structure, committees, and decision-making processes.", "SYSC 4"),
            _item("cmp", "Compliance Monitoring Programme (CMP)",
                  "Annual compliance monitoring plan with testing schedule.", "SYSC 6"),
            _item("risk-register", "Enterprise risk assessment / risk register",
                  "Comprehensive risk register with controls and mitigations.", "SYSC 7"),
            _item("wind-down-plan", "Wind-down plan",
                  "Plan for orderly cessation of business if required.", "SUP 15A, PSR 5.4"),
            _item("regdata-capability", "RegData capability statement",
                  "Confirmation of ability to submit regulatory returns via RegData.", "SUP 16"),
        ],
    },
    {
        "id": "it-security",
        "title": "IT & Security",
        "phase": "Policies & Controls",
        "items": [
            _item("incident-management", "Security incident management procedure",
                  "Process for detecting, responding to, and reporting security incidents.", "PSR 19"),
            _item("security-contact", "Security contact point details",
                  "Designated security contact for FCA communications.", "PSR 19"),
            _item("sensitive-data-access", "Sensitive payment data access policy",
                  "Controls for accessing customer payment data.", "PSR 19"),
            _item("data-map", "Data map / data flow diagrams",
                  "Visual representation of data flows through systems.", "PSR 19, GDPR"),
            _item("bcp-dr", "Business Continuity Plan (BCP) and DR",
                  "Business continuity and disaster recovery plans.", "SYSC 4, PSR 19"),
            _item("statistical-reporting", "Statistical reporting methodology",
                  "Approach for compiling fraud and complaint statistics.", "PSR 19, SUP 16"),
            _item("security-policy", "Security Policy Document (full)",
                  "Comprehensive information security policy.", "PSR 19"),
        ],
    },
    {
        "id": "aml-ctf",
        "title": "AML/CTF",
        "phase": "Policies & Controls",
        "items": [
            _item("aml-policies", "AML/CTF policies and procedures",
                  "Anti-money laundering and counter-terrorist financing policies.", "MLR 2017"),
            _item("ml-tf-risk-assessment", "Business-wide ML/TF risk assessment",
                  "Assessment of money laundering and terrorist financing risks.", "MLR 2017 Reg 18"),
            _item("mlro-appointment", "MLRO appointment and responsibilities",
                  "Documentation of MLRO role, responsibilities, and reporting lines.", "MLR 2017 Reg 21"),
        ],
    },
    {
        "id": "policies-procedures",
        "title": "Policies & Procedures",
        "phase": "Policies & Controls",
        "items": [
            _item("policy-index", "Index of all firm policies (with version control)",
                  "Master index of all policies with version numbers and review dates.", "SYSC"),
            _item("complaints-policy", "Complaints handling policy",
                  "Policy for handling customer complaints including FOS referral.", "DISP"),
            _item("outsourcing-policy", "Outsourcing policy & third-party risk management",
                  "Policy governing outsourcing decisions and third-party oversight.", "SYSC 8"),
            _item("safeguarding-policy", "Safeguarding policy & reconciliations procedure",
                  "Policy for safeguarding customer funds and daily reconciliation.", "PSR 10"),
            _item("infosec-policy", "Information security policy + standards",
                  "Information security policy and supporting standards.", "PSR 19"),
            _item("access-control", "Access control policy & logging standard",
                  "Access control policy including user provisioning and audit logging.", "PSR 19"),
            _item("incident-response", "Incident response plan (IRP)",
                  "Plan for responding to operational and security incidents.", "PSR 19, SYSC 4"),
            _item("fraud-management", "Fraud risk management policy",
                  "Policy for preventing, detecting, and responding to fraud.", "PSR 19"),
            _item("operational-resilience", "Operational resilience / BCP testing policy",
                  "Policy for testing business continuity and operational resilience.", "SYSC 4, PS21/3"),
        ],
    },
]


def get_all_checklist_item_ids():
    return [item["id"] for category in FCA_API_CHECKLIST for item in category["items"]]


def get_total_item_count():
    return sum(len(category["items"]) for category in FCA_API_CHECKLIST)


def get_categories_by_phase(phase):
    return [category for category in FCA_API_CHECKLIST if category["phase"] == phase]


def calculate_completion_percentage(statuses, completed_statuses=DEFAULT_COMPLETED_STATUSES):
    """Share of all checklist items whose status is in ``completed_statuses``.

    Status entries for ids that are not checklist items are ignored.
    """
    known = set(get_all_checklist_item_ids())
    completed = sum(
        1 for item_id, status in (statuses or {}).items()
        if item_id in known and status in completed_statuses
    )
    return percent(completed, len(known))


def calculate_category_completion(category_id, statuses, completed_statuses=DEFAULT_COMPLETED_STATUSES):
    category = next((c for c in FCA_API_CHECKLIST if c["id"] == category_id), None)
    if category is None:
        return {"completed": 0, "total": 0}
    statuses = statuses or {}
    completed = sum(
        1 for item in category["items"]
        if statuses.get(item["id"], "not_started") in completed_statuses
    )
    return {"completed": completed, "total": len(category["items"])}


def calculate_phase_completion(phase, statuses, completed_statuses=DEFAULT_COMPLETED_STATUSES):
    statuses = statuses or {}
    completed = 0
    total = 0
    for category in get_categories_by_phase(phase):
        for item in category["items"]:
            total += 1
            if statuses.get(item["id"], "not_started") in completed_statuses:
                completed += 1
    return {"completed": completed, "total": total, "percentage": percent(completed, total)}

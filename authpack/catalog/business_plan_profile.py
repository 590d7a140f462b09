"""
Business-plan profile questionnaire.

Sections and questions with an ``applies_to`` list are only shown for those
permission codes; everything else applies to every profile permission.
Option scores feed the weighted section scores; ``pack_section_keys`` map a
question onto the pack sections its answer informs.
"""

PROFILE_PERMISSION_CODES = ("payments", "consumer-credit", "investments")

PROFILE_QUESTION_TYPES = ("single-choice", "multi-choice", "text", "number", "boolean")

PROFILE_VERSION = 1

PROFILE_SECTIONS = [
    {
        "id": "scope",
        "title": "Regulatory Scope and Perimeter",
        "description": "Define regulated activities, permissions, and out-of-scope boundaries.",
        "applies_to": None,
        "pack_section_keys": ["product-scope", "executive-summary", "schedule-2"],
    },
    {
        "id": "model",
        "title": "Business Model and Customers",
        "description": "Who you serve, how you reach them, and how revenue is generated.",
        "applies_to": None,
        "pack_section_keys": ["business-model", "customer-lifecycle", "consumer-duty"],
    },
    {
        "id": "operations",
        "title": "Operations and Technology",
        "description": "Operating model, technology stack, outsourcing, and resilience controls.",
        "applies_to": None,
        "pack_section_keys": [
            "operational-resilience", "third-party-risk", "cyber-security", "sensitive-data", "data-quality",
        ],
    },
    {
        "id": "governance",
        "title": "Governance and Controls",
        "description": "Governance model, SMCR accountability, and compliance monitoring.",
        "applies_to": None,
        "pack_section_keys": [
            "governance",
            "risk-compliance",
            "compliance-monitoring",
            "mi-board-reporting",
            "threshold-conditions",
            "change-management",
        ],
    },
    {
        "id": "financials",
        "title": "Financials and Wind-Down",
        "description": "Funding runway, projections, and orderly wind-down planning.",
        "applies_to": None,
        "pack_section_keys": ["financials", "wind-down"],
    },
    {
        "id": "payments",
        "title": "Payments and E-Money Scope",
        "description": "Payment services, safeguarding model, agents, and PSD2 security obligations.",
        "applies_to": ["payments"],
        "pack_section_keys": [
            "product-architecture", "client-asset-protection", "security-policy",
            "flow-of-funds", "regulatory-reporting", "app-fraud",
        ],
    },
    {
        "id": "consumer-credit",
        "title": "Consumer Credit Operations",
        "description": "Credit activities, affordability checks, promotions, and forbearance controls.",
        "applies_to": ["consumer-credit"],
        "pack_section_keys": ["customer-lifecycle", "consumer-duty", "risk-compliance"],
    },
    {
        "id": "investments",
        "title": "Investment Services Scope",
        "description": "Investment activities, client categorisation, and client asset safeguarding.",
        "applies_to": ["investments"],
        "pack_section_keys": ["product-scope", "client-asset-protection", "risk-compliance", "business-model"],
    },
]


def _q(qid, section_id, prompt, qtype, *, weight=1, required=True, options=None, refs=None,
       pack_keys=None, applies_to=None, allow_other=False, threshold=None, description=None):
    return {
        "id": qid,
        "section_id": section_id,
        "prompt": prompt,
        "description": description,
        "type": qtype,
        "options": [
            {"value": value, "label": label, "score": score} for value, label, score in (options or [])
        ],
        "required": required,
        "weight": weight,
        "regulatory_refs": refs or [],
        "pack_section_keys": pack_keys or [],
        "applies_to": applies_to,
        "allow_other": allow_other,
        "threshold": threshold,
    }


PROFILE_QUESTIONS = [
    # ── Scope ──────────────────────────────────────────────────────────
    _q(
        "core-regulated-activities", "scope",
        "Summarize the regulated activities in scope for the firm.", "text",
        weight=3, refs=["PERG 2 - Regulated activities"],
        pack_keys=["product-scope", "executive-summary"],
        description="List the services that require FCA authorisation and why.",
    ),
    _q(
        "core-perimeter-clarity", "scope",
        "Have you documented which activities are out of scope?", "single-choice",
        weight=2, refs=["PERG 2 - Regulated activities"], pack_keys=["product-scope"],
        options=[
            ("documented", "Yes, documented and reviewed", 3),
            ("partial", "Partially documented", 2),
            ("review", "Under review", 1),
            ("unknown", "Not yet defined", 0),
        ],
    ),
    # ── Model ──────────────────────────────────────────────────────────
    _q(
        "core-customer-segments", "model", "Primary customer segments", "multi-choice",
        weight=2, refs=["PRIN 2A - Consumer Duty"], pack_keys=["business-model", "consumer-duty"],
        options=[
            ("retail", "Retail consumers", 2),
            ("sme", "SMEs", 2),
            ("enterprise", "Enterprise / corporates", 2),
            ("regulated-firms", "Regulated firms", 2),
            ("platforms", "Platforms / marketplaces", 1),
        ],
    ),
    _q(
        "core-distribution", "model", "Distribution channels", "multi-choice",
        weight=2, pack_keys=["business-model"], allow_other=True,
        options=[
            ("direct", "Direct to customer", 2),
            ("agents", "Agents / introducers", 2),
            ("brokers", "Brokers / intermediaries", 2),
            ("api", "Embedded API partnerships", 2),
            ("white-label", "White label / partnerships", 1),
            ("other", "Other", 1),
        ],
    ),
    _q(
        "core-revenue-model", "model", "Primary revenue model", "multi-choice",
        weight=2, pack_keys=["business-model", "financials"], allow_other=True,
        options=[
            ("transaction-fees", "Transaction fees", 2),
            ("subscription", "Subscription fees", 2),
            ("commission", "Commission / referral", 2),
            ("interest", "Interest margin", 2),
            ("fx", "FX spread", 2),
            ("other", "Other", 1),
        ],
    ),
    _q(
        "core-geography", "model", "Customer geography at launch", "single-choice",
        weight=2, pack_keys=["product-scope"],
        options=[("uk", "UK only", 3), ("uk-eea", "UK + EEA", 2), ("global", "Global", 1)],
    ),
    # ── Operations ─────────────────────────────────────────────────────
    _q(
        "core-outsourcing", "operations", "Material outsourcing or third parties", "multi-choice",
        weight=2, refs=["FCA outsourcing expectations"], allow_other=True,
        pack_keys=["third-party-risk", "operational-resilience"],
        options=[
            ("cloud-hosting", "Cloud hosting / infrastructure", 2),
            ("kyc-aml", "KYC / AML tooling", 2),
            ("payments-processor", "Payment processor", 2),
            ("credit-scoring", "Credit scoring", 2),
            ("customer-support", "Customer support", 1),
            ("fraud", "Fraud monitoring", 2),
            ("other", "Other", 1),
        ],
    ),
    # ── Governance ─────────────────────────────────────────────────────
    _q(
        "core-governance", "governance", "Governance readiness", "single-choice",
        weight=2, pack_keys=["governance", "mi-board-reporting"],
        options=[
            ("appointed", "Board and SMF roles appointed", 3),
            ("identified", "Roles identified, onboarding in progress", 2),
            ("review", "Roles under review", 1),
            ("not-started", "Not started", 0),
        ],
    ),
    # ── Financials ─────────────────────────────────────────────────────
    _q(
        "core-capital", "financials", "Capital and funding position", "single-choice",
        weight=2, pack_keys=["financials"],
        options=[
            ("funded-buffer", "Fully funded with buffer", 3),
            ("committed", "Funding committed, not drawn", 2),
            ("in-progress", "Funding in progress", 1),
            ("not-secured", "Funding not secured", 0),
        ],
    ),
    _q(
        "core-projections", "financials", "Three-year financial projections", "single-choice",
        weight=2, pack_keys=["financials"],
        options=[
            ("full", "Full model with stress testing", 3),
            ("base", "Base case model only", 2),
            ("outline", "High-level outline", 1),
            ("none", "Not started", 0),
        ],
    ),
    _q(
        "core-winddown", "financials", "Wind-down planning", "single-choice",
        weight=2, pack_keys=["wind-down"],
        options=[
            ("draft", "Draft plan complete (costed & reviewed)", 3),
            ("outline", "Outline in progress", 2),
            ("not-started", "Not started", 0),
        ],
    ),
    # ── Payments ───────────────────────────────────────────────────────
    _q(
        "pay-psp-record", "payments",
        "Will the firm be the PSP of record for the payment services it provides?", "single-choice",
        weight=3, refs=["PERG 15 - PSP responsibility", "PSR 2017"], applies_to=["payments"],
        pack_keys=["product-scope", "governance", "flow-of-funds"],
        options=[
            ("psp-of-record", "Yes, the firm is PSP of record", 3),
            ("shared", "Shared with a sponsor/partner PSP", 1),
            ("no", "No, another PSP is PSP of record", 0),
            ("review", "Under review", 0),
        ],
    ),
    _q(
        "pay-services", "payments", "Payment services in scope (PSR 2017)", "multi-choice",
        weight=3, applies_to=["payments"],
        refs=["PERG 15 Annex 2 - Payment services", "PSD2 Annex I - Payment services", "PSR 2017"],
        pack_keys=["product-scope", "product-architecture", "schedule-2"],
        options=[
            ("cash-deposit", "Cash deposit to payment account", 2),
            ("cash-withdrawal", "Cash withdrawal from payment account", 2),
            ("execution-transfers", "Execution of payment transactions (credit transfer, direct debit, card)", 2),
            ("execution-telecom", "Execution via telecom or IT device", 1),
            ("issuing-acquiring", "Issuing or acquiring payment instruments", 2),
            ("money-remittance", "Money remittance", 2),
        ],
    ),
    _q(
        "pay-exemptions", "payments", "Potential exemptions relied upon", "multi-choice",
        weight=1, required=False, applies_to=["payments"], pack_keys=["product-scope"],
        refs=["PERG 15 Annex 3 - Payment services exclusions", "PSD2 Article 3 - Exemptions"],
        options=[
            ("limited-network", "Limited network exemption", 1),
            ("commercial-agent", "Commercial agent exemption", 1),
            ("technical-service", "Technical service provider", 1),
            ("none", "No exemptions expected", 1),
        ],
    ),
    _q(
        "pay-emoney", "payments", "Will you issue electronic money?", "single-choice",
        weight=2, applies_to=["payments"], pack_keys=["product-scope"],
        refs=["EMRs 2011", "FCA Approach to Payment Services and E-Money (2017)", "PSD2"],
        options=[("yes", "Yes, issuing e-money", 3), ("no", "No e-money issuance", 1), ("review", "Under review", 0)],
    ),
    _q(
        "pay-safeguarding", "payments", "Safeguarding approach", "single-choice",
        weight=3, applies_to=["payments"], pack_keys=["client-asset-protection"],
        refs=[
            "PSR 2017 - Safeguarding",
            "FCA Approach to Payment Services and E-Money (2017) - Safeguarding",
        ],
        options=[
            ("segregated", "Segregated safeguarding account", 3),
            ("insurance", "Insurance or comparable guarantee", 2),
            ("undecided", "Not decided yet", 0),
        ],
    ),
    _q(
        "pay-agents", "payments", "Will you use agents or distributors?", "single-choice",
        weight=2, applies_to=["payments"], refs=["PSR 2017 - Agent registration"],
        pack_keys=["business-model", "governance"],
        options=[("yes", "Yes, agents or distributors", 2), ("no", "No agents", 3), ("review", "Under review", 1)],
    ),
    _q(
        "pay-volume", "payments", "Expected monthly transaction volume (GBP)", "number",
        weight=1, required=False, applies_to=["payments"], pack_keys=["financials"],
        refs=["PSR 2017 - Reporting and notifications"],
        threshold={
            "value": 3000000,
            "comparison": "gt",
            "message": (
                "Volume above £3m/month: You cannot register as a Small Payment Institution (SPI). "
                "Full PI/EMI authorization is required."
            ),
        },
    ),
    # ── Consumer credit ────────────────────────────────────────────────
    _q(
        "cc-activities", "consumer-credit", "Consumer credit activities in scope", "multi-choice",
        weight=3, applies_to=["consumer-credit"], pack_keys=["product-scope", "schedule-2"],
        refs=["PERG 17 - Consumer credit regime", "CONC 1 - Application"],
        options=[
            ("lending", "Consumer lending", 2),
            ("credit-broking", "Credit broking", 2),
            ("debt-adjusting", "Debt adjusting", 2),
            ("debt-counselling", "Debt counselling", 2),
            ("debt-collecting", "Debt collecting", 2),
            ("credit-info", "Credit information services", 1),
        ],
    ),
    _q(
        "cc-products", "consumer-credit", "Consumer credit products", "multi-choice",
        weight=2, applies_to=["consumer-credit"], allow_other=True, pack_keys=["business-model"],
        refs=["CONC 5 - Responsible lending"],
        options=[
            ("unsecured-loans", "Unsecured loans", 2),
            ("hire-purchase", "Hire purchase / conditional sale", 2),
            ("bnpl", "BNPL / short-term credit", 2),
            ("overdraft", "Credit card / overdraft", 2),
            ("logbook", "Logbook / pawn lending", 1),
            ("other", "Other", 1),
        ],
    ),
    _q(
        "cc-affordability", "consumer-credit", "Affordability assessment framework", "single-choice",
        weight=3, applies_to=["consumer-credit"], pack_keys=["customer-lifecycle", "consumer-duty"],
        refs=["CONC 5.2A - Creditworthiness and affordability"],
        options=[("documented", "Documented and tested", 3), ("draft", "Draft framework in progress", 2),
                 ("not-started", "Not started", 0)],
    ),
    # ── Investments ────────────────────────────────────────────────────
    _q(
        "inv-activities", "investments", "Investment activities in scope", "multi-choice",
        weight=3, applies_to=["investments"], pack_keys=["product-scope", "schedule-2"],
        refs=["PERG 2 - Investment activities", "MiFID II"],
        options=[
            ("advice", "Investment advice", 2),
            ("portfolio-management", "Portfolio management", 2),
            ("arranging", "Arranging deals", 2),
            ("dealing-agent", "Dealing as agent", 2),
            ("dealing-principal", "Dealing as principal", 2),
            ("custody", "Safeguarding and administration (custody)", 2),
        ],
    ),
    _q(
        "inv-client-types", "investments", "Client categories", "multi-choice",
        weight=2, applies_to=["investments"], pack_keys=["business-model", "consumer-duty"],
        refs=["COBS 3 - Client categorisation"],
        options=[("retail", "Retail", 2), ("professional", "Professional", 2), ("eligible", "Eligible counterparties", 1)],
    ),
    _q(
        "inv-client-assets", "investments", "Will you hold client money or assets?", "single-choice",
        weight=3, applies_to=["investments"], pack_keys=["client-asset-protection"],
        refs=["COBS 6 - Disclosure", "CASS"],
        options=[("yes", "Yes, client assets will be held", 3), ("no", "No client assets held", 2),
                 ("review", "Under review", 1)],
    ),
]

# permission code → multi-choice question listing the firm's activities
ACTIVITY_QUESTION_IDS = {
    "payments": "pay-services",
    "consumer-credit": "cc-activities",
    "investments": "inv-activities",
}

# Profile sections that stay locked until their prerequisites are answered.
SECTION_DEPENDENCIES = [
    {"section_id": "model", "depends_on": ["scope"],
     "reason": "Define regulated activities before describing business model"},
    {"section_id": "operations", "depends_on": ["scope", "model"],
     "reason": "Scope and model inform operational requirements"},
    {"section_id": "governance", "depends_on": ["scope"],
     "reason": "Governance structure depends on regulatory scope"},
    {"section_id": "financials", "depends_on": ["scope", "model"],
     "reason": "Financial projections need scope and model clarity"},
    {"section_id": "payments", "depends_on": ["scope"],
     "reason": "Complete scope section to unlock payments questions"},
    {"section_id": "consumer-credit", "depends_on": ["scope"],
     "reason": "Complete scope section to unlock consumer credit questions"},
    {"section_id": "investments", "depends_on": ["scope"],
     "reason": "Complete scope section to unlock investments questions"},
]

"""Built-in prompt templates installed by ``docstage init``.

Every template has a single ``{document_text}`` slot. JSON examples in the
bodies use quoted keys, so they never look like placeholders.
"""

from __future__ import annotations

_CLASSIFIER_PROMPT = """\
You are a document classifier for a property-management office. Documents are
usually in Spanish and belong to a residential owners' community.

Classify the document into exactly one of these types:
- minutes: minutes of an owners' meeting (acta de junta)
- invoice: an invoice from a supplier (factura)
- contract: a service or supply contract (contrato)
- notice: a notice or announcement to residents (comunicado)
- delivery_note: a delivery note for goods (albaran)
- budget: a quotation or budget (presupuesto)
- property_deed: a notarial deed of sale (escritura)
- unknown: none of the above

Answer with a single JSON object and nothing else:
{"type": "<one of the types above>", "confidence": <0.0 to 1.0>, "reasoning": "<one sentence>"}

Document:
{document_text}
"""

_EXTRACTOR_HEADER = """\
You extract structured data from a {kind} (usually written in Spanish).
Return a single JSON object with exactly these keys. Use null when a value is
not present in the document; never invent values. Dates must be YYYY-MM-DD and
amounts plain numbers without currency symbols.

Keys:
"""

_EXTRACTOR_FOOTER = """
Document:
{document_text}
"""

# agent name -> (document description, key descriptions)
_EXTRACTORS: dict[str, tuple[str, list[str]]] = {
    "minutes_extractor": (
        "meeting minutes document (acta)",
        [
            "meeting_date: date of the meeting",
            "meeting_type: ordinaria or extraordinaria",
            "location: where the meeting was held",
            "community_name: name of the owners' community",
            "president_in: incoming president",
            "president_out: outgoing president",
            "administrator: property administrator",
            "agenda: list of agenda items",
            "agreements: list of agreements reached",
            "summary: two or three sentence summary",
        ],
    ),
    "invoice_extractor": (
        "supplier invoice (factura)",
        [
            "invoice_number: invoice identifier",
            "provider_name: issuing company",
            "provider_tax_id: issuer CIF/NIF",
            "client_name: billed party",
            "client_tax_id: billed party CIF/NIF",
            "issue_date: date of issue",
            "due_date: payment due date",
            "subtotal: amount before tax",
            "tax_amount: total tax (IVA)",
            "total_amount: amount payable",
            "currency: ISO currency code, default EUR",
            "products: list of line items with description, quantity, unit_price, amount",
        ],
    ),
    "contract_extractor": (
        "contract (contrato)",
        [
            "title: contract title",
            "party_a: first contracting party",
            "party_b: second contracting party",
            "object: subject matter of the contract",
            "start_date: start of the contract",
            "end_date: end of the contract",
            "total_amount: total contract value",
            "currency: ISO currency code, default EUR",
            "payment_terms: how and when payment is made",
            "obligations: list of main obligations",
        ],
    ),
    "notice_extractor": (
        "notice to residents (comunicado)",
        [
            "notice_date: date of the notice",
            "sender: who issues the notice",
            "subject: subject line",
            "notice_type: informativo, convocatoria, incidencia, obras or otro",
            "urgency: baja, media or alta",
            "recipients: list of addressees",
            "deadline: date by which action is required",
            "required_action: what recipients must do",
            "summary: two sentence summary",
        ],
    ),
    "delivery_note_extractor": (
        "delivery note (albaran)",
        [
            "note_number: delivery note identifier",
            "issuer: supplier issuing the note",
            "receiver: party receiving the goods",
            "issue_date: date of delivery",
            "order_number: related purchase order",
            "goods: list of items with description and quantity",
            "total_quantity: total units delivered",
            "carrier: transport company",
        ],
    ),
    "budget_extractor": (
        "budget or quotation (presupuesto)",
        [
            "budget_number: quotation identifier",
            "issuer: company issuing the budget",
            "client: addressee",
            "issue_date: date of issue",
            "valid_until: expiry date of the offer",
            "subtotal: amount before tax",
            "taxes: total tax",
            "total: total amount",
            "currency: ISO currency code, default EUR",
            "line_items: list of items with description, quantity, unit_price, amount",
        ],
    ),
    "property_deed_extractor": (
        "notarial deed of sale (escritura)",
        [
            "seller: selling party",
            "buyer: buying party",
            "property_address: address of the property",
            "sale_price: agreed price",
            "deed_date: date the deed was signed",
            "notary: notary who authorised the deed",
            "cadastral_reference: referencia catastral",
        ],
    ),
}


def _extractor_prompt(kind: str, keys: list[str]) -> str:
    header = _EXTRACTOR_HEADER.replace("{kind}", kind)
    return header + "".join(f"- {k}\n" for k in keys) + _EXTRACTOR_FOOTER


DEFAULT_TEMPLATES: dict[str, tuple[str, list[str]]] = {
    "document_classifier": (_CLASSIFIER_PROMPT, ["document_text"]),
    **{
        name: (_extractor_prompt(kind, keys), ["document_text"])
        for name, (kind, keys) in _EXTRACTORS.items()
    },
}

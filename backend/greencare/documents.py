"""Printable invoice: HTML layout, converted to PDF by WeasyPrint."""
from html import escape

from greencare.words import amount_in_words


def _money(cents) -> str:
    return f"{(cents or 0) / 100:,.2f}"


def render_invoice_html(inv: dict, items: list, company: dict, settings: dict) -> str:
    currency = settings.get("currency") or "USD"
    rows_html = "".join(
        f"<tr><td>{n}</td><td>{escape(it['description'])}</td>"
        f"<td style='text-align:right'>{it['quantity']}</td>"
        f"<td style='text-align:right'>{_money(it['rate_cents'])}</td>"
        f"<td style='text-align:right'>{_money(it['amount_cents'])}</td></tr>"
        for n, it in enumerate(items, start=1)
    )
    bill_to = "<br/>".join(
        escape(str(company.get(k)))
        for k in ("name", "contact_person", "address", "email", "phone")
        if company.get(k)
    )
    unit = "Rupees" if currency == "INR" else currency
    subunit = "Paise" if currency == "INR" else "Cents"
    return f"""
<!doctype html>
<html>
<head>
<meta charset="utf-8"/>
<title>Invoice {escape(inv['invoice_number'])}</title>
<style>
body {{ font-family: Helvetica, Arial, sans-serif; font-size: 12px; }}
h1 {{ margin-bottom: 0; text-align: center; }}
.issuer {{ text-align: center; color: #444; }}
.meta {{ display: flex; justify-content: space-between; margin-top: 16px; }}
table {{ width:100%; border-collapse: collapse; margin-top: 12px; }}
td, th {{ border: 1px solid #ccc; padding: 6px; }}
tfoot td {{ font-weight: bold; }}
.words {{ margin-top: 8px; font-style: italic; }}
.signature {{ margin-top: 48px; text-align: right; }}
</style>
</head>
<body>
  <h1>{escape(settings.get('company_name') or '')}</h1>
  <div class="issuer">{escape(settings.get('company_address') or '')}</div>
  <h2 style="text-align:center">INVOICE</h2>
  <div class="meta">
    <div><strong>Bill To:</strong><br/>{bill_to}</div>
    <div>
      <div>No: {escape(inv['invoice_number'])}</div>
      <div>Date: {inv.get('issue_date') or ''}</div>
      <div>Due: {inv.get('due_date') or ''}</div>
    </div>
  </div>
  <table>
    <thead>
      <tr><th>Sl. No.</th><th>Items</th><th>Qty</th><th>Rate</th><th>Amount</th></tr>
    </thead>
    <tbody>
      {rows_html}
    </tbody>
    <tfoot>
      <tr><td colspan="4" style="text-align:right">TOTAL</td><td style="text-align:right">{_money(inv['amount_cents'])} {escape(currency)}</td></tr>
    </tfoot>
  </table>
  <div class="words">{amount_in_words(inv['amount_cents'], unit=unit, subunit=subunit)}</div>
  <div class="signature">Signature</div>
</body>
</html>
""".strip()


def render_invoice_pdf(inv: dict, items: list, company: dict, settings: dict):
    html = render_invoice_html(inv, items, company, settings)

    from weasyprint import HTML
    pdf_bytes = HTML(string=html, base_url=".").write_pdf()
    fname = f"invoice_{inv['invoice_number']}.pdf"
    return fname, pdf_bytes

"""
Raise Lab Quotations Dashboard: HTML Templates
Jinja strings rendered with render_template_string.
"""

BASE_CSS = """
:root{--bg:#f5f7fb;--sf:#fff;--sf2:#eef2f8;--bd:#d6dde8;--tx:#1b2433;--tx2:#5f6b7d;
--ac:#00529c;--or:#ff6600;--rd:#d64545;--gn:#1f9d63;--r:8px}
*{margin:0;padding:0;box-sizing:border-box}
body{font-family:'DM Sans',sans-serif;background:var(--bg);color:var(--tx);min-height:100vh}
a{color:var(--ac);text-decoration:none}
.hdr{background:var(--sf);border-bottom:3px solid var(--or);padding:14px 28px;display:flex;justify-content:space-between;align-items:center;gap:12px}
.hdr h1{font-size:17px;font-weight:600;color:var(--ac)}
.hdr-btn{padding:6px 14px;font-size:12px;font-weight:600;border-radius:6px;border:1px solid var(--bd);background:var(--sf2);color:var(--tx)}
.hdr-btn:hover{border-color:var(--ac)}
.ctr{max-width:1200px;margin:0 auto;padding:20px 28px}
.card{background:var(--sf);border:1px solid var(--bd);border-radius:var(--r);padding:20px;margin-bottom:16px}
.card-t{font-size:12px;font-weight:600;color:var(--tx2);text-transform:uppercase;letter-spacing:1px;margin-bottom:14px}
.tbl{width:100%;border-collapse:collapse;font-size:13px}
.tbl th{text-align:left;padding:8px 10px;font-size:10px;color:var(--tx2);text-transform:uppercase;border-bottom:1px solid var(--bd)}
.tbl td{padding:10px;border-bottom:1px solid var(--sf2);vertical-align:top}
.mono{font-family:'JetBrains Mono',monospace}
.btn{display:inline-block;padding:7px 14px;border-radius:6px;font-size:12px;font-weight:600;background:var(--ac);color:#fff;border:none;cursor:pointer}
.btn-o{background:var(--or)}
.alert{padding:10px 14px;border-radius:6px;margin-bottom:14px;font-size:13px}
.al-e{background:rgba(214,69,69,.1);color:var(--rd)}.al-s{background:rgba(31,157,99,.1);color:var(--gn)}.al-i{background:var(--sf2)}
.frm label{display:block;font-size:12px;color:var(--tx2);margin:10px 0 4px}
.frm input{width:100%;padding:8px 10px;border:1px solid var(--bd);border-radius:6px;font-size:14px}
.terms label{display:block;font-size:12px;margin:4px 0}
"""


def layout(content: str) -> str:
    """Wrap page content in the shared shell (header, flashes)."""
    return """<!doctype html><html><head><meta charset="utf-8">
<title>{{ title or 'Raise Lab Quotations' }}</title><style>""" + BASE_CSS + """</style></head><body>
<div class="hdr"><h1>Raise Lab Equipment · Quotations</h1><div>
{% if user %}<span class="mono">{{ user.email }}</span>
 {% if user.role == 'admin' %}<a class="hdr-btn" href="/admin">Quotations</a>{% endif %}
 <a class="hdr-btn" href="/auth/logout">Sign out</a>
{% else %}<a class="hdr-btn" href="/auth/login">Sign in</a>{% endif %}
</div></div>
<div class="ctr">
{% with messages = get_flashed_messages(with_categories=true) %}
 {% for cat, msg in messages %}<div class="alert al-{{ 's' if cat == 'success' else 'e' if cat == 'error' else 'i' }}">{{ msg }}</div>{% endfor %}
{% endwith %}
""" + content + """
</div></body></html>"""


PAGE_LOGIN = layout("""
<div class="card" style="max-width:380px;margin:40px auto">
 <div class="card-t">Sign in</div>
 <form class="frm" method="post" action="/auth/login">
  <label for="email">Email</label><input id="email" name="email" type="email" value="{{ email or '' }}" required>
  <label for="password">Password</label><input id="password" name="password" type="password" required>
  <div style="margin-top:16px"><button class="btn" type="submit">Sign in</button></div>
 </form>
</div>
""")

PAGE_HOME = layout("""
<div class="card">
 <div class="card-t">Welcome</div>
 {% if user %}<p>Signed in as <b>{{ user.full_name or user.email }}</b>.</p>
 {% else %}<p>Sign in to manage quotations.</p>{% endif %}
</div>
""")

PAGE_ADMIN = layout("""
<div class="card">
 <div class="card-t">Quotations ({{ quotations|length }})</div>
 {% if quotations %}
 <table class="tbl">
  <thead><tr><th>Quote No</th><th>Customer</th><th>Items</th><th>Created</th><th></th></tr></thead>
  <tbody>
  {% for q in quotations %}
   <tr>
    <td class="mono"><a href="/admin/quotations/{{ q.id }}">{{ q.quotation_number }}</a></td>
    <td>{{ q.customer_name }}</td>
    <td>{{ q.items_count }}</td>
    <td class="mono">{{ q.created_label }}</td>
    <td><a class="btn" href="/admin/quotations/{{ q.id }}/pdf?currency=INR">PDF ₹</a>
        <a class="btn btn-o" href="/admin/quotations/{{ q.id }}/pdf?currency=USD">PDF $</a></td>
   </tr>
  {% endfor %}
  </tbody>
 </table>
 {% else %}<p>No quotations yet.</p>{% endif %}
</div>
""")

PAGE_DETAIL = layout("""
<div class="card">
 <div class="card-t">Quotation {{ quotation.quotation_number }}</div>
 <p><b>{{ quotation.customer_name }}</b></p>
 {% if quotation.customer_address %}<p style="white-space:pre-line">{{ quotation.customer_address }}</p>{% endif %}
 <p class="mono">Date {{ created_label }} · valid until {{ validity_label }}</p>
</div>
<div class="card">
 <div class="card-t">Line items</div>
 <table class="tbl">
  <thead><tr><th>#</th><th>Item</th><th>Layout</th><th>Add-ons</th><th>Unit price</th></tr></thead>
  <tbody>
  {% for row in items %}
   <tr>
    <td>{{ loop.index }}</td>
    <td>{{ row.item.name }}</td>
    <td>{{ row.item.image_format.value }}</td>
    <td>{% for a in row.item.selected_addons %}{{ a.name }}{% if not loop.last %}, {% endif %}{% endfor %}</td>
    <td class="mono">{{ row.price }}</td>
   </tr>
  {% endfor %}
  </tbody>
 </table>
</div>
<div class="card">
 <div class="card-t">Download</div>
 <form method="get" action="/admin/quotations/{{ quotation.id }}/pdf">
  {% if terms %}<div class="terms">
   {% for t in terms %}<label><input type="checkbox" name="term" value="{{ t.id }}"> {{ t.title }}</label>{% endfor %}
  </div>{% endif %}
  <div style="margin-top:12px">
   <button class="btn" name="currency" value="INR">Download PDF (INR)</button>
   <button class="btn btn-o" name="currency" value="USD">Download PDF (USD)</button>
  </div>
 </form>
</div>
""")

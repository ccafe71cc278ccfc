"""
Supplier Portal: HTML Templates
Rendered with render_template_string through dashboard.render().
"""

BASE_CSS = """
:root{--bg:#0f1117;--sf:#1a1d27;--sf2:#242836;--bd:#2e3345;--tx:#e4e6ed;--tx2:#8b90a0;
--ac:#4f8cff;--ac2:#3b6fd4;--gn:#34d399;--yl:#fbbf24;--rd:#f87171;--or:#fb923c;--r:10px}
*{margin:0;padding:0;box-sizing:border-box}
body{font-family:'DM Sans',sans-serif;background:var(--bg);color:var(--tx);min-height:100vh}
a{color:var(--ac);text-decoration:none}
.hdr{background:var(--sf);border-bottom:2px solid var(--bd);padding:14px 28px;display:flex;justify-content:space-between;align-items:center;flex-wrap:wrap;gap:12px;min-height:68px}
.hdr h1{font-size:17px;font-weight:600;letter-spacing:-0.3px;color:var(--tx2)}
.hdr h1 span{color:var(--ac)}
.hdr-right{display:flex;align-items:center;gap:10px;font-size:12px;flex-wrap:wrap}
.hdr-btn{padding:6px 14px;font-size:12px;font-weight:600;border-radius:6px;border:1px solid var(--bd);background:var(--sf2);color:var(--tx);cursor:pointer;text-decoration:none;transition:.15s}
.hdr-btn:hover{border-color:var(--ac);background:rgba(79,140,255,.1);color:#fff}
.hdr-active{border-color:var(--ac);background:rgba(79,140,255,.12)}
.hdr-warn{border-color:var(--or);color:var(--or)}
.hdr-user{font-family:'JetBrains Mono',monospace;color:var(--tx2)}
.ctr{max-width:1600px;margin:0 auto;padding:20px 28px}
.card{background:var(--sf);border:1px solid var(--bd);border-radius:var(--r);padding:20px;margin-bottom:16px}
.card-t{font-size:12px;font-weight:600;color:var(--tx2);text-transform:uppercase;letter-spacing:1px;margin-bottom:14px}
.toolbar{display:flex;gap:10px;align-items:center;justify-content:space-between;flex-wrap:wrap;margin-bottom:14px}
.toolbar input[type=search],.frm input,.frm select,.frm textarea{background:var(--sf2);border:1px solid var(--bd);border-radius:6px;color:var(--tx);padding:7px 10px;font-size:13px;min-width:260px}
.btn{padding:6px 12px;font-size:12px;font-weight:600;border-radius:6px;border:1px solid var(--bd);background:var(--sf2);color:var(--tx);cursor:pointer}
.btn:hover{border-color:var(--ac)}
.btn-p{background:var(--ac);border-color:var(--ac);color:#fff}
.btn:disabled{opacity:.5;cursor:not-allowed}
.badge{padding:3px 9px;border-radius:16px;font-size:10px;font-weight:600;text-transform:uppercase;letter-spacing:.5px;white-space:nowrap}
.b-success{background:rgba(52,211,153,.15);color:var(--gn)}
.b-warning{background:rgba(251,191,36,.15);color:var(--yl)}
.b-info{background:rgba(79,140,255,.15);color:var(--ac)}
.b-error{background:rgba(248,113,113,.15);color:var(--rd)}
.b-primary{background:rgba(139,144,160,.15);color:var(--tx2)}
.step{display:inline-flex;gap:6px;align-items:center;padding:3px 10px;border-radius:16px;font-size:11px;font-weight:600}
.step-1{background:#dbeafe;color:#1d4ed8}.step-2{background:#bfdbfe;color:#1e40af}
.step-3{background:#60a5fa;color:#1e3a8a}.step-4{background:#3b82f6;color:#fff}.step-5{background:#1d4ed8;color:#fff}
.tbl{width:100%;border-collapse:collapse;font-size:13px}
.tbl thead th{text-align:left;padding:8px 10px;font-size:10px;color:var(--tx2);text-transform:uppercase;letter-spacing:.5px;border-bottom:1px solid var(--bd);font-weight:600}
.tbl tbody td{padding:9px 10px;border-bottom:1px solid rgba(46,51,69,.5);vertical-align:middle}
.tbl .child td{background:var(--sf2);font-size:12px}
.tbl .num{text-align:right;font-family:'JetBrains Mono',monospace}
mark{background:rgba(251,191,36,.35);color:inherit;border-radius:2px}
.pager{display:flex;gap:8px;align-items:center;justify-content:flex-end;margin-top:12px;font-size:12px;color:var(--tx2)}
.alert{padding:10px 14px;border-radius:8px;margin-bottom:14px;font-size:13px}
.al-s{background:rgba(52,211,153,.12);color:var(--gn)}.al-e{background:rgba(248,113,113,.12);color:var(--rd)}.al-i{background:rgba(79,140,255,.12);color:var(--ac)}
.empty{padding:30px;text-align:center;color:var(--tx2)}
.kb{display:grid;grid-template-columns:repeat(5,minmax(220px,1fr));gap:12px;overflow-x:auto}
.kb-col{background:var(--sf);border:1px solid var(--bd);border-radius:var(--r);min-height:420px;display:flex;flex-direction:column}
.kb-col.over{border-color:var(--ac);background:rgba(79,140,255,.06)}
.kb-hd{display:flex;justify-content:space-between;padding:12px 14px;border-bottom:1px solid var(--bd);font-size:12px;font-weight:600;text-transform:uppercase;color:var(--tx2)}
.kb-body{padding:10px;display:flex;flex-direction:column;gap:8px;flex:1}
.kb-card{background:var(--sf2);border:1px solid var(--bd);border-radius:8px;padding:10px 12px;cursor:grab;font-size:12px}
.kb-card.dragging{opacity:.4}
.kb-card.saving{border-color:var(--yl)}
.kb-card .t{font-weight:600;font-size:13px;margin-bottom:4px}
.kb-card .m{color:var(--tx2);display:flex;justify-content:space-between;gap:6px}
.kb.disabled .kb-card{cursor:default}
.frm{display:grid;grid-template-columns:repeat(2,1fr);gap:14px}
.frm label{display:block;font-size:11px;color:var(--tx2);text-transform:uppercase;margin-bottom:4px}
.frm input[disabled]{opacity:.6}
"""

PAGE_LOGIN = """
<div class="card" style="max-width:520px;margin:60px auto">
 <div class="card-t">Sign in</div>
 <form method="post" action="/login">
  <input type="hidden" name="next" value="{{ next_url }}">
  <div class="frm" style="grid-template-columns:1fr">
   <div><label for="token">NGauge access token</label>
   <input id="token" name="token" type="password" autocomplete="off" style="width:100%" required></div>
  </div>
  <div style="margin-top:16px"><button class="btn btn-p" type="submit">Continue</button></div>
 </form>
</div>
"""

PAGE_ERROR = """
<div class="card">
 <div class="card-t">{{ title or 'Error' }}</div>
 <div class="alert al-e">{{ error.message }}{% if error.status %} (HTTP {{ error.status }}){% endif %}</div>
 <a class="btn" href="{{ request.path }}">Retry</a>
</div>
"""

PAGE_FORBIDDEN = """
<div class="card">
 <div class="card-t">Not available</div>
 <div class="alert al-e">{{ message }}</div>
 <a class="btn" href="{{ back_url or '/' }}">Back</a>
</div>
"""

# Generic table page. Context: heading, columns, page (records.paginate),
# q, cell(key, value), actions(row) → [{label, url, confirm}],
# children(row) → rows, child_columns, toolbar_extra.
PAGE_TABLE = """
<div class="card">
 <div class="toolbar">
  <div class="card-t" style="margin:0">{{ heading }} <span style="color:var(--tx2)">({{ page.total }})</span></div>
  <form method="get" style="display:flex;gap:8px;align-items:center">
   {% for k, v in keep_params.items() %}<input type="hidden" name="{{ k }}" value="{{ v }}">{% endfor %}
   <input type="search" name="q" value="{{ q }}" placeholder="Search…">
   <button class="btn" type="submit">Search</button>
   {{ toolbar_extra|safe }}
  </form>
 </div>
 {% if page.rows %}
 <table class="tbl">
  <thead><tr>
   {% for c in columns %}<th>{{ c.label }}</th>{% endfor %}
   {% if actions %}<th></th>{% endif %}
  </tr></thead>
  <tbody>
  {% for row in page.rows %}
   <tr>
    {% for c in columns %}<td>{{ cell(c.key, row.get(c.key))|safe }}</td>{% endfor %}
    {% if actions %}<td style="white-space:nowrap">
     {% for a in actions(row) %}
      {% if a.get('href') %}<a class="btn" href="{{ a.href }}">{{ a.label }}</a>
      {% else %}<button class="btn" data-url="{{ a.url }}" data-confirm="{{ a.get('confirm', '') }}" onclick="act(this)">{{ a.label }}</button>{% endif %}
     {% endfor %}
    </td>{% endif %}
   </tr>
   {% if children %}{% set kids = children(row) %}{% if kids %}
   <tr class="child"><td colspan="{{ columns|length + (1 if actions else 0) }}">
    <table class="tbl">
     <thead><tr>{% for c in child_columns(kids) %}<th>{{ c.label }}</th>{% endfor %}</tr></thead>
     <tbody>{% for k in kids %}<tr>{% for c in child_columns(kids) %}<td>{{ cell(c.key, k.get(c.key))|safe }}</td>{% endfor %}</tr>{% endfor %}</tbody>
    </table>
   </td></tr>
   {% endif %}{% endif %}
  {% endfor %}
  </tbody>
 </table>
 <div class="pager">
  <span>{{ page.start }}–{{ page.end }} of {{ page.total }}</span>
  {% if page.page > 1 %}<a class="btn" href="?{{ qs(page=page.page - 1) }}">‹ Prev</a>{% endif %}
  <span>Page {{ page.page }} / {{ page.pages }}</span>
  {% if page.page < page.pages %}<a class="btn" href="?{{ qs(page=page.page + 1) }}">Next ›</a>{% endif %}
 </div>
 {% else %}
 <div class="empty">{% if q %}No rows match “{{ q }}”{% else %}No rows yet{% endif %}</div>
 {% endif %}
</div>
<script>
function act(btn){
 const msg=btn.dataset.confirm;
 if(msg && !confirm(msg)) return;
 btn.disabled=true;
 fetch(btn.dataset.url,{method:'POST',headers:{'Content-Type':'application/json'}})
  .then(r=>r.json().then(d=>({ok:r.ok,d})))
  .then(({ok,d})=>{ if(ok){ location.reload(); } else { alert(d.error||'Request failed'); btn.disabled=false; } })
  .catch(()=>{ alert('Network error'); btn.disabled=false; });
}
</script>
"""

# Kanban board. Context: heading, board_url, edit_url (optional), q,
# disabled, keep_params, toolbar_extra. Cards are loaded from board_url as JSON.
PAGE_BOARD = """
<div class="toolbar">
 <div class="card-t" style="margin:0">{{ heading }}</div>
 <form method="get" style="display:flex;gap:8px;align-items:center">
  {% for k, v in keep_params.items() %}<input type="hidden" name="{{ k }}" value="{{ v }}">{% endfor %}
  <input type="search" name="q" value="{{ q }}" placeholder="Search cards…">
  <button class="btn" type="submit">Search</button>
  <button class="btn" type="button" onclick="loadBoard(true)">Reload</button>
  {{ toolbar_extra|safe }}
 </form>
</div>
<div id="kb-msg"></div>
<div id="kb" class="kb{% if disabled %} disabled{% endif %}"></div>
<script>
const BOARD_URL={{ board_url|tojson }};
const EDIT_URL={{ (edit_url or '')|tojson }};
const Q={{ q|tojson }};
let board=null;

function esc(s){return String(s==null?'':s).replace(/[&<>"']/g,c=>({'&':'&amp;','<':'&lt;','>':'&gt;','"':'&quot;',"'":'&#39;'}[c]));}
function note(kind,text){
 const el=document.getElementById('kb-msg');
 el.innerHTML='<div class="alert al-'+kind+'">'+esc(text)+'</div>';
 setTimeout(()=>{el.innerHTML='';},4000);
}
function card(it){
 const title=(it.po_number||'')+(it.item_code?' · '+it.item_code:'');
 const edit=EDIT_URL?'<a href="'+EDIT_URL.replace('__ID__',encodeURIComponent(it.ROWID))+'">Edit</a>':'';
 return '<div class="kb-card" draggable="'+(!board.disabled)+'" data-id="'+esc(it.ROWID)+'">'
  +'<div class="t">'+esc(it.item||title)+'</div>'
  +'<div class="m"><span>'+esc(title)+'</span>'+edit+'</div>'
  +'<div class="m"><span>Qty '+esc(it.quantity||0)+'</span><span>'+esc(it.po_status||it.wo_status||'')+'</span></div>'
  +'</div>';
}
function render(){
 const root=document.getElementById('kb');
 root.innerHTML=board.buckets.map(b=>
  '<div class="kb-col" data-zone="'+esc(b.slug)+'"><div class="kb-hd"><span>'+esc(b.label)+'</span><span>'+b.items.length+'</span></div>'
  +'<div class="kb-body">'+b.items.map(card).join('')+'</div></div>').join('');
 if(board.disabled) return;
 root.querySelectorAll('.kb-card').forEach(el=>{
  el.addEventListener('dragstart',e=>{
   e.dataTransfer.setData('text/plain',el.dataset.id);
   el.classList.add('dragging');
   post('/begin',{item_id:el.dataset.id});
  });
  el.addEventListener('dragend',()=>el.classList.remove('dragging'));
 });
 root.querySelectorAll('.kb-col').forEach(col=>{
  col.addEventListener('dragover',e=>{e.preventDefault();col.classList.add('over');});
  col.addEventListener('dragleave',()=>col.classList.remove('over'));
  col.addEventListener('drop',e=>{
   e.preventDefault();col.classList.remove('over');
   const id=e.dataTransfer.getData('text/plain');
   const over=e.target.closest('.kb-card');
   move(id, over && over.dataset.id!==id ? over.dataset.id : col.dataset.zone);
  });
 });
}
function post(path,body){
 return fetch(BOARD_URL+path+(Q?'?q='+encodeURIComponent(Q):''),{method:'POST',headers:{'Content-Type':'application/json'},body:JSON.stringify(body)})
  .then(r=>r.json());
}
function move(id,over){
 post('/move',{item_id:id,over_id:over}).then(d=>{
  if(d.board){board=d.board;render();}
  const r=d.result||{};
  if(r.state==='saved') note('s','Moved to '+r.to_status);
  else if(r.state==='reverted') note('e','Could not save: '+(r.error||'error')+' (reverted)');
  else if(r.state==='busy') note('i','Still saving the previous move');
  else if(r.state==='stale') note('i','Board was reloaded, move dropped');
 }).catch(()=>note('e','Network error'));
}
function loadBoard(refresh){
 fetch(BOARD_URL+'?'+(refresh?'refresh=1&':'')+(Q?'q='+encodeURIComponent(Q):''))
  .then(r=>r.json()).then(d=>{
   if(!d.ok){note('e',d.error||'Failed to load board');return;}
   board=d.board;render();
  }).catch(()=>note('e','Network error'));
}
loadBoard(true);
</script>
"""

PAGE_WORK_ORDER_FORM = """
<div class="card">
 <div class="toolbar">
  <div class="card-t" style="margin:0">Work order {{ row.get('po_number', '') }}{{ row.get('item_code', '') }}</div>
  <a class="btn" href="/work-order?view={{ view }}">Back</a>
 </div>
 <form method="post">
  <div class="frm">
   {% for key, label in fields %}
   <div><label for="f-{{ key }}">{{ label }}</label>
   {% if key == 'step' %}
    <select id="f-{{ key }}" name="step">
     {% for s in steps %}<option value="{{ s }}"{% if s == row.get('step') %} selected{% endif %}>{{ s }}</option>{% endfor %}
    </select>
   {% elif key in readonly %}
    <input id="f-{{ key }}" value="{{ row.get(key) if row.get(key) is not none else '' }}" disabled>
   {% else %}
    <input id="f-{{ key }}" name="{{ key }}" value="{{ row.get(key) if row.get(key) is not none else '' }}">
   {% endif %}
   </div>
   {% endfor %}
  </div>
  <div style="margin-top:16px"><button class="btn btn-p" type="submit">Save</button></div>
 </form>
</div>
"""

# New-record form. Context: heading, back_url, fields [(key, label, required)],
# values (dict, re-filled after a failed submit), submit_label.
PAGE_RECORD_FORM = """
<div class="card">
 <div class="toolbar">
  <div class="card-t" style="margin:0">{{ heading }}</div>
  <a class="btn" href="{{ back_url }}">Back</a>
 </div>
 <form method="post">
  <div class="frm">
   {% for key, label, required in fields %}
   <div><label for="f-{{ key }}">{{ label }}{% if required %} *{% endif %}</label>
    <input id="f-{{ key }}" name="{{ key }}"{% if key.endswith('_date') %} type="date"{% endif %}
     value="{{ values.get(key) if values.get(key) is not none else '' }}"{% if required %} required{% endif %}>
   </div>
   {% endfor %}
  </div>
  <div style="margin-top:16px"><button class="btn btn-p" type="submit">{{ submit_label or 'Save' }}</button></div>
 </form>
</div>
"""

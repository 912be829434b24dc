"""Browser runtime embedded in every compiled widget.

The runtime never decides how a field renders or validates: it reads the
per-field plans, rules and styles that ``compiler.compile_widget`` injects in
place of ``__WIDGET_CONFIG__``.
"""

CONFIG_MARKER = "__WIDGET_CONFIG__"

RUNTIME_TEMPLATE = """(function () {
  var W = __WIDGET_CONFIG__;
  var D = document;
  var SELF = D.currentScript || D.querySelector('script[src*="' + W.scriptName + '"]');
  var started = false;

  function onCreateAccountPage() {
    var loc = window.location;
    return new RegExp(W.gate.path, 'i').test(loc.pathname || '') &&
      new RegExp(W.gate.query, 'i').test(loc.search || '');
  }

  function target() {
    var src = (SELF && SELF.src) || '';
    var base = '';
    var pub = '';
    try {
      var u = new URL(src, window.location.origin);
      base = u.origin;
      pub = u.searchParams.get('pub') || '';
    } catch (_) {
      base = window.location.origin || '';
    }
    return { url: base + W.endpoint + '?pub=' + encodeURIComponent(pub), pub: pub };
  }

  function node(tag, css, text) {
    var n = D.createElement(tag);
    if (css) n.style.cssText = css;
    if (text != null) n.textContent = text;
    return n;
  }

  function addOption(select, value, text) {
    var o = D.createElement('option');
    o.value = value;
    o.textContent = text;
    select.appendChild(o);
  }

  function regionsOf(code) {
    for (var i = 0; i < W.geography.length; i++) {
      if (W.geography[i].countryShortCode === code) return W.geography[i].regions || [];
    }
    return [];
  }

  function passes(name, value) {
    var text = String(value == null ? '' : value).trim();
    if (name === 'url') {
      try { new URL(text); return true; } catch (_) { return false; }
    }
    if (name === 'number') return text !== '' && !isNaN(Number(text));
    var rule = W.rules[name];
    if (rule.lowercase) text = text.toLowerCase();
    return new RegExp(rule.pattern).test(text);
  }

  function isEmpty(v) {
    if (v === false || v == null) return true;
    if (typeof v === 'string') return v.trim() === '';
    if (Object.prototype.toString.call(v) === '[object Array]') return v.length === 0;
    return false;
  }

  function build() {
    var css = W.css;
    var t = W.theme;
    var items = [];
    var stateItems = [];
    var country = '';
    var phase = 'idle';

    function dress(el, plan) {
      el.style.cssText = plan.inputCss;
      el.setAttribute('aria-label', plan.label);
      el.name = plan.key;
    }

    function choices(plan, type) {
      var box = node('div');
      box.setAttribute('role', type === 'radio' ? 'radiogroup' : 'group');
      box.setAttribute('aria-label', plan.label);
      var inputs = [];
      for (var i = 0; i < plan.options.length; i++) {
        var opt = plan.options[i];
        var row = node('label');
        row.className = 'cs-choice';
        var input = D.createElement('input');
        input.type = type;
        input.name = 'cs-field-' + plan.index;
        input.value = opt.value;
        row.appendChild(input);
        row.appendChild(node('span', '', opt.label));
        box.appendChild(row);
        inputs.push(input);
      }
      return { el: box, inputs: inputs };
    }

    function mountState(it) {
      var regions = country ? regionsOf(country) : [];
      var locked = !regions.length && !country && !!it.plan.needsCountry;
      var next;
      if (regions.length) {
        next = D.createElement('select');
        addOption(next, '', W.text.statePlaceholder);
        for (var i = 0; i < regions.length; i++) {
          addOption(next, regions[i].shortCode || regions[i].name, regions[i].name);
        }
      } else {
        next = D.createElement('input');
        next.type = 'text';
        next.placeholder = locked ? W.text.stateNeedsCountry : W.text.stateFreeText;
        next.disabled = locked;
      }
      dress(next, it.plan);
      if (it.el && it.el.parentNode) it.el.parentNode.replaceChild(next, it.el);
      it.el = next;
      return next;
    }

    function control(it) {
      var plan = it.plan;
      var el;
      var i;
      switch (plan.kind) {
        case 'country_select':
          el = D.createElement('select');
          addOption(el, '', W.text.countryPlaceholder);
          for (i = 0; i < W.geography.length; i++) {
            addOption(el, W.geography[i].countryShortCode, W.geography[i].countryName);
          }
          dress(el, plan);
          el.addEventListener('change', function () {
            country = el.value;
            for (var s = 0; s < stateItems.length; s++) mountState(stateItems[s]);
          });
          it.el = el;
          return el;
        case 'state_control':
          stateItems.push(it);
          return mountState(it);
        case 'textarea':
          el = D.createElement('textarea');
          el.rows = 3;
          el.placeholder = plan.placeholder || '';
          break;
        case 'select':
          el = D.createElement('select');
          addOption(el, '', W.text.optionPlaceholder);
          for (i = 0; i < plan.options.length; i++) {
            addOption(el, plan.options[i].value, plan.options[i].label);
          }
          break;
        case 'radio':
        case 'checkbox_group':
          var group = choices(plan, plan.kind === 'radio' ? 'radio' : 'checkbox');
          it.el = group.el;
          it.choices = group.inputs;
          return group.el;
        case 'checkbox':
          el = D.createElement('input');
          el.type = 'checkbox';
          el.setAttribute('aria-label', plan.label);
          el.name = plan.key;
          it.el = el;
          return el;
        case 'file':
          el = D.createElement('input');
          el.type = 'file';
          break;
        default:
          el = D.createElement('input');
          el.type = plan.inputType;
          el.placeholder = plan.placeholder || '';
      }
      dress(el, plan);
      it.el = el;
      return el;
    }

    function field(plan) {
      var it = { plan: plan, el: null, choices: null };
      var g = node('div');
      g.appendChild(node('label', plan.labelCss, plan.labelText));
      g.appendChild(control(it));
      it.err = node('div', css.error);
      it.err.className = 'cs-error';
      g.appendChild(it.err);
      items.push(it);
      return g;
    }

    function value(it) {
      var i;
      var out;
      switch (it.plan.kind) {
        case 'checkbox':
          return !!it.el.checked;
        case 'checkbox_group':
          out = [];
          for (i = 0; i < it.choices.length; i++) if (it.choices[i].checked) out.push(it.choices[i].value);
          return out;
        case 'radio':
          for (i = 0; i < it.choices.length; i++) if (it.choices[i].checked) return it.choices[i].value;
          return '';
        case 'file':
          return '';
        default:
          return (it.el.value || '').trim();
      }
    }

    function check(it) {
      var plan = it.plan;
      if (plan.kind === 'file') {
        var picked = it.el.files && it.el.files.length > 0;
        return plan.required && !picked ? W.text.required : '';
      }
      var v = value(it);
      if (isEmpty(v)) return plan.required ? W.text.required : '';
      if (typeof v !== 'string') return '';
      var msg = '';
      if (plan.typeCheck && !passes(plan.typeCheck, v)) msg = W.rules[plan.typeCheck].message;
      if (plan.labelCheck && !passes(plan.labelCheck, v)) msg = W.rules[plan.labelCheck].message;
      return msg;
    }

    function setError(it, msg) {
      it.err.textContent = msg || '';
      it.err.style.display = msg ? 'block' : 'none';
      if (msg) it.el.classList.add('cs-input-error');
      else it.el.classList.remove('cs-input-error');
    }

    function validate() {
      var first = null;
      for (var i = 0; i < items.length; i++) {
        var msg = check(items[i]);
        setError(items[i], msg);
        if (msg && !first) first = items[i];
      }
      if (first) {
        try { (first.choices && first.choices.length ? first.choices[0] : first.el).focus(); } catch (_) {}
      }
      return !first;
    }

    function collect() {
      var data = {};
      for (var i = 0; i < items.length; i++) {
        if (items[i].plan.kind === 'file') continue;
        data[items[i].plan.key] = value(items[i]);
      }
      return data;
    }

    function email(data) {
      var i;
      for (i = 0; i < items.length; i++) {
        if (!items[i].plan.isEmail) continue;
        var v = value(items[i]);
        if (typeof v === 'string' && passes('email', v)) return v.toLowerCase();
      }
      for (var k in data) {
        if (!/email/i.test(k)) continue;
        var s = String(data[k] == null ? '' : data[k]).trim();
        if (passes('email', s)) return s.toLowerCase();
      }
      return '';
    }

    function files() {
      var out = [];
      for (var i = 0; i < items.length; i++) {
        if (items[i].plan.kind !== 'file') continue;
        var list = items[i].el.files || [];
        for (var j = 0; j < list.length; j++) out.push({ part: items[i].plan.filePart, file: list[j] });
      }
      return out;
    }

    var page = node('div', css.page);
    if (t.layout === 'split') {
      var aside = node('div', css.aside);
      aside.appendChild(node('div', t.splitImageUrl ? css.overlay : css.orb));
      page.appendChild(aside);
    }
    var root = node('div', css.root);
    root.id = W.containerId;
    var card = node('div', css.card);
    card.appendChild(node('h1', css.title, t.title));
    card.appendChild(node('p', css.subtitle, t.subtitle));
    var form = node('form', css.form);
    form.noValidate = true;

    for (var gi = 0; gi < W.groups.length; gi++) {
      var group = W.groups[gi];
      var holder = form;
      if (group.paired) {
        holder = node('div');
        holder.className = 'cs-row-group';
        form.appendChild(holder);
      }
      for (var fi = 0; fi < group.fields.length; fi++) holder.appendChild(field(group.fields[fi]));
    }

    var status = node('div', css.error);
    status.className = 'cs-form-error';
    status.setAttribute('role', 'alert');
    form.appendChild(status);

    var btn = node('button', css.button, t.buttonText);
    btn.type = 'submit';
    btn.onmousedown = function () { btn.style.transform = 'scale(0.98)'; };
    btn.onmouseup = function () { btn.style.transform = 'scale(1)'; };
    if (items.length) form.appendChild(btn);

    function showStatus(msg) {
      status.textContent = msg || '';
      status.style.display = msg ? 'block' : 'none';
    }

    form.addEventListener('submit', function (e) {
      e.preventDefault();
      if (phase !== 'idle') return;
      phase = 'validating';
      showStatus('');
      if (!validate()) {
        phase = 'idle';
        return;
      }
      phase = 'submitting';
      var dest = target();
      var data = collect();
      var mail = email(data);
      var attached = files();
      var request;
      if (attached.length) {
        var fd = new FormData();
        fd.append('pub', dest.pub);
        fd.append('email', mail);
        fd.append('data', JSON.stringify(data));
        for (var i = 0; i < attached.length; i++) fd.append(attached[i].part, attached[i].file);
        request = { method: 'POST', body: fd };
      } else {
        request = {
          method: 'POST',
          headers: { 'Content-Type': 'application/json' },
          body: JSON.stringify({ data: data, pub: dest.pub, email: mail })
        };
      }
      var idleText = btn.textContent;
      btn.disabled = true;
      btn.textContent = W.text.busy;
      fetch(dest.url, request)
        .then(function (res) {
          return res.json().catch(function () { return {}; }).then(function (body) {
            if (!res.ok) throw body || {};
            return body;
          });
        })
        .then(function () {
          phase = 'success';
          var ok = node('div', '', W.text.success);
          ok.className = 'cs-success';
          form.parentNode.replaceChild(ok, form);
          btn.disabled = true;
        })
        .catch(function (err) {
          phase = 'idle';
          showStatus(err && err.code === 'DUPLICATE' ? W.text.duplicate : W.text.failure);
          btn.textContent = idleText;
          btn.disabled = false;
        });
    });

    card.appendChild(form);
    root.appendChild(card);
    page.appendChild(root);
    return page;
  }

  function run() {
    if (started) return;
    started = true;
    if (!onCreateAccountPage()) return;
    var html = D.documentElement;
    var loader = null;
    try {
      html.style.visibility = 'hidden';
      var style = D.createElement('style');
      style.textContent = W.baseCss;
      (D.head || html).appendChild(style);
      var body = D.body;
      while (body.firstChild) body.removeChild(body.firstChild);
      body.style.cssText = W.css.body;
      loader = node('div', W.css.loader);
      loader.id = W.containerId + '-loading';
      loader.appendChild(node('div', W.css.spinner));
      body.appendChild(loader);
      body.appendChild(build());
      body.removeChild(loader);
      html.style.visibility = 'visible';
    } catch (e) {
      if (loader && loader.parentNode) loader.parentNode.removeChild(loader);
      html.style.visibility = 'visible';
      if (window.console && console.error) console.error('custom-signup error', e);
    }
  }

  if (D.readyState === 'loading') D.addEventListener('DOMContentLoaded', run);
  else run();
})();
"""

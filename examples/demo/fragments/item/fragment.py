def render(ctx):
    ctx.select(".item-value", lambda el: el.text(ctx.data("value") or ""))

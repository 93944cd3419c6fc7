async def control(ctx):
    await ctx.pass_("form")
    await ctx.pass_("visit-counter")
    if not ctx.title():
        ctx.title("Home")


async def render(ctx):
    response = await ctx.fetch("binding:backend/")
    message = response.text

    ctx.select("#home-message", lambda el: el.text("Set by home fragment"))
    ctx.select("#home-attr-msg", lambda el: el.text(ctx.data("msg") or ""))
    ctx.select("#home-backend-msg", lambda el: el.text(message))

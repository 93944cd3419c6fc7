def control(ctx):
    ctx.title("Location")


async def render(ctx):
    loc = await ctx.relocate() or {}
    place = ", ".join(str(loc[key]) for key in ("city", "country") if loc.get(key)) or "unknown"
    ctx.select("#location", lambda el: el.text(place))
    ctx.select("#location-tz", lambda el: el.text(ctx.timezone() or "-"))

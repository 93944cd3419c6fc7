ONE_YEAR = 60 * 60 * 24 * 365


def control(ctx):
    visits = int(ctx.cookie("visits") or 0) + 1
    ctx.cookie("visits", visits, max_age=ONE_YEAR)


def render(ctx):
    visits = ctx.cookie("visits") or "0"
    ctx.select("#visits-visits", lambda el: el.text(visits))

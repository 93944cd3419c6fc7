"""Page shell: routes the URL to a content fragment."""

PAGES = {"/": "home", "/items": "items", "/where": "location"}


async def control(ctx):
    if ctx.error() >= 400:
        await ctx.pass_("error")
        return

    path = ctx.url().path
    if path == "/redirect":
        ctx.url("/")
    if path == "/boom":
        raise RuntimeError("deliberate failure")
    if path not in PAGES:
        ctx.error(404)
    await ctx.pass_(PAGES[path])


def render(ctx):
    status = ctx.status_code()
    content = "error" if status >= 400 else PAGES.get(ctx.url().path, "home")

    ctx.select("#root-content", lambda el: el.attr("name", content))
    ctx.select("title", lambda el: el.text(f"{ctx.title()} | Demo"))
    ctx.select("#root-message", lambda el: el.text("Set by root fragment"))
    ctx.select("#root-url", lambda el: el.text(f"The current URL is: {ctx.url()}"))

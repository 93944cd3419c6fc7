def control(ctx):
    if ctx.form() or ctx.url().query:
        ctx.title("Form Result")


def render(ctx):
    if ctx.form() and ctx.form("name"):
        name, method = ctx.form("name"), "POST"
    elif "name" in ctx.url().params:
        name, method = ctx.url().params["name"], "GET"
    else:
        ctx.select("#form-output", lambda el: el.style("display", "none"))
        return

    ctx.select("#form-result", lambda el: el.text(name))
    ctx.select("#form-method", lambda el: el.text(method))
    ctx.select("#form-output", lambda el: el.style("display", ""))

MESSAGES = {404: "This page does not exist.", 500: "Something went wrong."}


def control(ctx):
    ctx.title(f"Error {ctx.error()}")


def render(ctx):
    status = ctx.error()
    ctx.select("#error-code", lambda el: el.text(status))
    ctx.select("#error-message", lambda el: el.text(MESSAGES.get(status, "Request failed.")))

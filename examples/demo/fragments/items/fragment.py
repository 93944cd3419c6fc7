"""Random list of items, rendered through the built-in list fragment."""

import json
import random
import uuid


def control(ctx):
    ctx.title("Items")


def render(ctx):
    count = int(ctx.data("count") or 3)
    entries = {str(uuid.uuid4()): {"value": random.randint(0, 99)} for _ in range(count)}
    ctx.select("#items", lambda el: el.attr("data-iter", json.dumps(entries)))

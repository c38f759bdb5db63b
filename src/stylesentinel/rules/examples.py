from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RuleExample:
    language: str
    bad: str
    good: str | None = None
    notes: str | None = None


EXAMPLES: dict[str, RuleExample] = {
    "N01": RuleExample(
        language="javascript",
        bad="const visible = items.length > 0;\nconst open = false;\n",
        good="const isVisible = items.length > 0;\nconst isOpen = false;\n",
    ),
    "N02": RuleExample(
        language="javascript",
        bad="const isNotActive = user.status !== 'active';\nif (!isNotActive) { greet(user); }\n",
        good="const isActive = user.status === 'active';\nif (isActive) { greet(user); }\n",
    ),
    "N03": RuleExample(
        language="javascript",
        bad="function userData(id) {\n  return api.get(`/users/${id}`);\n}\n",
        good="function fetchUserData(id) {\n  return api.get(`/users/${id}`);\n}\n",
        notes="Components (PascalCase), accessors and `on*` handler props are exempt.",
    ),
    "N04": RuleExample(
        language="javascript",
        bad="const d = new Date();\nfunction area(w, h) { return w * h; }\n",
        good="const createdAt = new Date();\nfunction computeArea(width, height) { return width * height; }\n",
        notes="Loop counters (`for (let i = 0; ...)`) and inline callback params are exempt.",
    ),
    "N05": RuleExample(
        language="javascript",
        bad="const listOfAllActiveUsersFetchedFromServer = await fetchUsers();\n",
        good="const activeUsers = await fetchUsers();\n",
    ),
    "N06": RuleExample(
        language="javascript",
        bad="const usrMsg = getMessage(usr);\nconst btn = document.querySelector('button');\n",
        good="const userMessage = getMessage(user);\nconst button = document.querySelector('button');\n",
    ),
    "N07": RuleExample(
        language="javascript",
        bad="class MenuItem {\n  handleMenuItemClick() {}\n}\n",
        good="class MenuItem {\n  handleClick() {}\n}\n",
    ),
    "N08": RuleExample(
        language="javascript",
        bad="class user_profile {}\nlet Total_count = 0;\nlet MAX_ITEMS = 10;\n",
        good="class UserProfile {}\nlet totalCount = 0;\nconst MAX_ITEMS = 10;\n",
    ),
    "S01": RuleExample(
        language="javascript",
        bad="setTimeout(refresh, 86400000);\n",
        good="const MS_PER_DAY = 24 * 60 * 60 * 1000;\nsetTimeout(refresh, MS_PER_DAY);\n",
    ),
    "S02": RuleExample(
        language="javascript",
        bad="function isAdult(age) {\n  if (age >= ADULT_AGE) {\n    return true;\n  } else {\n    return false;\n  }\n}\n",
        good="function isAdult(age) {\n  return age >= ADULT_AGE;\n}\n",
        notes="`stylesentinel fix` rewrites this automatically.",
    ),
    "S03": RuleExample(
        language="javascript",
        bad="function getLabel(user) {\n  if (!user) {\n    return 'guest';\n  } else {\n    return user.name;\n  }\n}\n",
        good="function getLabel(user) {\n  if (!user) {\n    return 'guest';\n  }\n  return user.name;\n}\n",
    ),
    "S04": RuleExample(
        language="javascript",
        bad=(
            "function processOrder(order) {\n"
            "  if (order) {\n"
            "    if (order.items) {\n"
            "      if (order.isPaid) {\n"
            "        if (order.items.length) {\n"
            "          ship(order);\n"
            "        }\n"
            "      }\n"
            "    }\n"
            "  }\n"
            "}\n"
        ),
        good=(
            "function processOrder(order) {\n"
            "  if (!order || !order.items || !order.isPaid) return;\n"
            "  if (!order.items.length) return;\n"
            "  ship(order);\n"
            "}\n"
        ),
    ),
    "S05": RuleExample(
        language="javascript",
        bad=(
            "function getColor(status) {\n"
            "  switch (status) {\n"
            "    case 'ok': return 'green';\n"
            "    case 'warn': return 'yellow';\n"
            "    case 'error': return 'red';\n"
            "    default: return 'gray';\n"
            "  }\n"
            "}\n"
        ),
        good=(
            "const STATUS_COLORS = { ok: 'green', warn: 'yellow', error: 'red' };\n"
            "function getColor(status) {\n"
            "  return STATUS_COLORS[status] ?? 'gray';\n"
            "}\n"
        ),
    ),
    "S06": RuleExample(
        language="javascript",
        bad="const names = [];\nfor (const user of users) {\n  names.push(user.name);\n}\n",
        good="const names = users.map((user) => user.name);\n",
    ),
    "S07": RuleExample(
        language="javascript",
        bad="const label = count === 0 ? 'none' : count === 1 ? 'one' : 'many';\n",
        good=(
            "function getLabel(count) {\n"
            "  if (count === 0) return 'none';\n"
            "  if (count === 1) return 'one';\n"
            "  return 'many';\n"
            "}\n"
        ),
    ),
}

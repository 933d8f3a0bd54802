"""Example documents used by the replay harness and the tests."""

# ---------------------------------------------------------------------------
# Source files
# ---------------------------------------------------------------------------


PYTHON_FIBONACCI = (
    "def fibonacci(n):\n"
    "    a, b = 0, 1\n"
    "    for _ in range(n):\n"
    "        a, b = b, a + b\n"
    "    return a\n"
    "\n"
    "\n"
    "print(fibonacci(10))\n"
)

JS_TODO_LIST = (
    "const todos = [];\n"
    "\n"
    "function addTodo(title) {\n"
    "  const todo = { id: todos.length + 1, title, done: false };\n"
    "  todos.push(todo);\n"
    "  return todo;\n"
    "}\n"
    "\n"
    "function toggle(id) {\n"
    "  const todo = todos.find((t) => t.id === id);\n"
    "  if (todo) {\n"
    "    todo.done = !todo.done;\n"
    "  }\n"
    "}\n"
)

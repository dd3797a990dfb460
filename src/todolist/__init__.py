"""todolist - a small to-do list with local persistence."""

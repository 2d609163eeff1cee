"""Section navigation over the groups of a template.

Plain functions over a FormSessionState; a group counts as visited once the
user navigates away from it, which is what makes its required errors visible.
"""


def group_count(template):
    return len(template.groups) if template else 0


def current_group(state, template):
    if not group_count(template):
        return None
    return template.groups[state.current_group_index]


def next_group(state, template):
    """Advance one group, clamped at the last one. Returns the new index."""
    count = group_count(template)
    if not count:
        return 0
    state.visited_groups.add(state.current_group_index)
    state.current_group_index = min(state.current_group_index + 1, count - 1)
    return state.current_group_index


def previous_group(state, template):
    """Go back one group, clamped at 0. Returns the new index."""
    if not group_count(template):
        return 0
    state.visited_groups.add(state.current_group_index)
    state.current_group_index = max(state.current_group_index - 1, 0)
    return state.current_group_index


def progress(state, template):
    """Fraction of the way through the groups, (index + 1) / count."""
    count = group_count(template)
    if not count:
        return 0.0
    return (state.current_group_index + 1) / count


def is_last_group(state, template):
    """True when "next" should read "submit"."""
    count = group_count(template)
    return count == 0 or state.current_group_index >= count - 1


def mark_all_visited(state, template):
    state.visited_groups.update(range(group_count(template)))

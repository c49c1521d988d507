"""Clipboard exports: a per-level outline and a path-per-row matrix."""

from synthesis.core.tree import SynthesisTree

MATRIX_HEADER = ("Observation", "Harm", "Criterion", "Strategy")


def export_outline(project_name: str, tree: SynthesisTree) -> str:
    """
    Render the tree as a flat Markdown-like outline, one numbered section per level.

    Observations follow board order; harms, criteria and strategies follow
    creation order. Each harm carries a back-reference to the first
    observation it derives from. Orphaned harms are not reachable and are
    left out together with their criteria and strategies.
    """
    observations = tree.ordered_observations()
    harms = sorted(tree.reachable_harms(), key=lambda h: h.created_at)
    harm_ids = {h.id for h in harms}
    criteria = sorted((c for c in tree.criteria if c.harm_id in harm_ids), key=lambda c: c.created_at)
    criterion_ids = {c.id for c in criteria}
    strategies = sorted(
        (s for s in tree.strategies if s.criterion_id in criterion_ids), key=lambda s: s.created_at
    )

    lines = [f"# {project_name}", ""]
    if observations:
        lines.append("## Observations")
        for index, obs in enumerate(observations, start=1):
            text = f"**{obs.title}**: {obs.content}" if obs.title else obs.content
            lines.append(f"{index}. {text}")
        lines.append("")

    if harms:
        lines.append("## Harms")
        for index, harm in enumerate(harms, start=1):
            lines.append(f"{index}. {harm.content}")
            source = tree.observation_for(harm)
            lines.append(f'   ← From: "{source.content[:50]}..."')
        lines.append("")

    if criteria:
        lines.append("## Criteria")
        lines.extend(f"{index}. {crit.content}" for index, crit in enumerate(criteria, start=1))
        lines.append("")

    if strategies:
        lines.append("## Strategies (How Might We)")
        for index, strategy in enumerate(strategies, start=1):
            suffix = f" ({strategy.strategy_type.value})" if strategy.strategy_type else ""
            lines.append(f"{index}. {strategy.content}{suffix}")

    return "\n".join(lines).rstrip() + "\n"


def export_matrix(tree: SynthesisTree) -> list[tuple[str, str, str, str]]:
    """
    One row per Observation -> Harm -> Criterion -> Strategy path.

    Ancestor text repeats for every child; a branch that stops early yields a
    single row with blank trailing columns.
    """
    rows: list[tuple[str, str, str, str]] = []
    for obs in tree.ordered_observations():
        harms = tree.harms_for(obs.id)
        if not harms:
            rows.append((obs.content, "", "", ""))
            continue
        for harm in harms:
            criteria = tree.criteria_for(harm.id)
            if not criteria:
                rows.append((obs.content, harm.content, "", ""))
                continue
            for crit in criteria:
                strategies = tree.strategies_for(crit.id)
                if not strategies:
                    rows.append((obs.content, harm.content, crit.content, ""))
                    continue
                for strategy in strategies:
                    rows.append((obs.content, harm.content, crit.content, strategy.content))
    return rows


def _cell(value: str) -> str:
    # tabs and newlines would break the spreadsheet grid
    return " ".join(value.replace("\t", " ").splitlines())


def matrix_to_tsv(rows: list[tuple[str, str, str, str]], header: bool = True) -> str:
    lines = ["\t".join(MATRIX_HEADER)] if header else []
    lines.extend("\t".join(_cell(value) for value in row) for row in rows)
    return "\n".join(lines) + "\n"

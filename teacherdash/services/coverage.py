"""
Standards coverage engine.

Folds activity/standard tag rows into per-class hit counts and flags gap
standards: never taught for a class, or last taught too long ago.
"""
from datetime import date, datetime

from ..config import STALE_AFTER_DAYS

GAP_NEVER = "never"
GAP_STALE = "stale"


def _as_date(value):
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(str(value)[:10], '%Y-%m-%d').date()


def _round_half_up(value):
    return int(value + 0.5)


def fold_tags(tags):
    """Map ``(class_id, standard_id)`` to ``{hit_count, last_hit_date}``.

    Each tag row carries its joined ``activity`` (date, class_id). Rows whose
    activity is missing, undated or classless are skipped.
    """
    hits = {}
    for tag in tags:
        activity = tag.get('activity')
        if not activity or not activity.get('date') or activity.get('class_id') is None:
            continue
        key = (activity['class_id'], tag['standard_id'])
        entry = hits.setdefault(key, {"hit_count": 0, "last_hit_date": None})
        entry['hit_count'] += 1
        if entry['last_hit_date'] is None or activity['date'] > entry['last_hit_date']:
            entry['last_hit_date'] = activity['date']
    return hits


def gap_type_for(hit_count, last_hit_date, as_of):
    if hit_count == 0:
        return GAP_NEVER
    if last_hit_date and (as_of - _as_date(last_hit_date)).days >= STALE_AFTER_DAYS:
        return GAP_STALE
    return None


def compute_coverage(tags, standards, classes, as_of=None):
    """Per-class coverage of every standard.

    Every class is checked against every standard; there is no subject
    filtering, the teacher's tags decide what counts. ``coverage_pct``
    counts any standard with at least one hit, stale or not.
    """
    if not classes or not standards:
        return []

    as_of = _as_date(as_of) if as_of else date.today()
    hits = fold_tags(tags)

    results = []
    for cls in classes:
        class_standards = []
        for std in standards:
            entry = hits.get((cls['id'], std['id']))
            hit_count = entry['hit_count'] if entry else 0
            last_hit_date = entry['last_hit_date'] if entry else None
            gap_type = gap_type_for(hit_count, last_hit_date, as_of)
            class_standards.append({
                "id": std['id'],
                "code": std['code'],
                "description": std.get('description'),
                "strand": std.get('strand'),
                "subject": std.get('subject'),
                "grade_band": std.get('grade_band'),
                "hit_count": hit_count,
                "last_hit_date": last_hit_date,
                "is_gap": gap_type is not None,
                "gap_type": gap_type,
            })

        total = len(class_standards)
        covered = sum(1 for s in class_standards if s['hit_count'] > 0)
        results.append({
            "id": cls['id'],
            "name": cls['name'],
            "color": cls.get('color'),
            "total_standards": total,
            "covered_standards": covered,
            "coverage_pct": _round_half_up(100 * covered / total) if total else 0,
            "standards": class_standards,
        })
    return results


def gap_lines(coverage, limit=15):
    """Readable per-class gap listing for AI prompts.

    Classes without gaps are omitted; each class lists at most ``limit``
    gaps followed by a "... and N more gaps" line.
    """
    lines = []
    for cls in coverage:
        class_gaps = []
        for std in cls['standards']:
            if not std['is_gap']:
                continue
            if std['gap_type'] == GAP_NEVER:
                label = "NEVER COVERED"
            else:
                label = f"stale (last: {std['last_hit_date']})"
            class_gaps.append(f"  {std['code']} [{label}]: {std['description']}")
        if class_gaps:
            lines.append(f"{cls['name']}:\n" + "\n".join(class_gaps[:limit]))
            if len(class_gaps) > limit:
                lines.append(f"  ... and {len(class_gaps) - limit} more gaps")
    return lines

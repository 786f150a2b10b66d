"""Top-level package for the Finance Tracker.

The primary modules are:

* ``budget`` – the 50/30/20 budget breakdown and per-category budgets
* ``projections`` – month-by-month balance projections
* ``category_rules`` – keyword rules that categorize transactions
* ``storage`` – the JSON document store
* ``service`` – glue between the store and the calculators
* ``visualization`` – functions that generate Plotly figures
* ``dashboard`` – a Streamlit app that ties everything together

To run the dashboard from the command line you can execute:

```bash
python run_dashboard.py
```
"""

from . import budget  # noqa: F401  # re-exported for convenience
from . import projections  # noqa: F401  # re-exported for convenience
from . import service  # noqa: F401  # re-exported for convenience
from . import storage  # noqa: F401  # re-exported for convenience

__all__ = ["budget", "projections", "service", "storage"]

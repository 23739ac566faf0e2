import os

import numpy as np
import pandas as pd

from epbd.core.factors import derive_missing_factors
from epbd.core.indicators import CalculationParameters, compute_balance
from epbd.data.sources import load_factor_table, load_ledger
from epbd.report import render


def setup_dummy_data(ledger_path="/tmp/epbd_ledger.csv", factors_path="/tmp/epbd_factors.csv", steps=12):
    """Creates a monthly ledger (PV + heat pump) and a factor file for the example."""
    if os.path.exists(ledger_path) and os.path.exists(factors_path):
        return

    print(f"Creating dummy data at {ledger_path} and {factors_path}...")
    month = np.arange(steps)
    season = np.cos(2 * np.pi * month / steps)  # 1 in winter, -1 in summer

    used_epb = 600 + 300 * season  # kWh, heat pump + lighting
    pv = 500 - 350 * season  # kWh
    delivered = np.maximum(0.0, used_epb - pv)
    ledger = pd.DataFrame({
        "carrier": "ELECTRICITY",
        "timestep": month,
        "delivered": delivered,
        "produced_cogen": 0.0,
        "produced_other": pv,
        "used_nEPB": 50.0,  # appliances
        "used_EPB": used_epb,
    })
    ambient = pd.DataFrame({
        "carrier": "ENVIRONMENT",
        "timestep": month,
        "delivered": 0.0,
        "produced_cogen": 0.0,
        "produced_other": 2.0 * used_epb,  # ambient heat captured by the heat pump
        "used_nEPB": 0.0,
        "used_EPB": 2.0 * used_epb,
    })
    pd.concat([ledger, ambient]).to_csv(ledger_path, index=False)

    factors = pd.DataFrame([
        ("ELECTRICITY", "DELIVERED", "A", "INPUT", "", 0.414, 1.954, "Grid electricity"),
        ("ELECTRICITY", "PRODUCED", "A", "INPUT", "OTHER", 1.0, 0.0, "On-site PV"),
        ("ENVIRONMENT", "DELIVERED", "A", "INPUT", "", 1.0, 0.0, "Ambient heat"),
        ("ENVIRONMENT", "PRODUCED", "A", "INPUT", "", 1.0, 0.0, "Ambient heat"),
    ], columns=["carrier", "origin", "step", "direction", "source", "ren", "nren", "comment"])
    factors.to_csv(factors_path, index=False)


# 1. Load the inputs
setup_dummy_data()
ledger = load_ledger("/tmp/epbd_ledger.csv")
# Export factors are not in the file: derive them from the input factors
factors = derive_missing_factors(load_factor_table("/tmp/epbd_factors.csv"))

# 2. Compare the indicators for step A and step B weighting of exported energy
for k_exp in (0.0, 0.5, 1.0):
    params = CalculationParameters(reference_area=150.0, k_exp=k_exp)
    balance = compute_balance(ledger, factors, params)
    print(render(balance, "plain"))
    print()

# 3. Per-carrier breakdown
balance = compute_balance(ledger, factors, CalculationParameters(reference_area=150.0))
for carrier_balance, weighted in zip(balance.balances, balance.weighted):
    totals = carrier_balance.totals()
    print(
        f"{carrier_balance.carrier.value:12s} delivered={totals['delivered']:8.1f} "
        f"produced={totals['produced']:8.1f} exported={totals['exported_grid']:8.1f} "
        f"-> weighted {weighted.net}"
    )

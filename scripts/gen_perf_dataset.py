#!/usr/bin/env python3
"""Synthetic workbook generator for large bulk import runs.

Writes one .xlsx with a "Drivers Template" sheet and a "Jobs Template" sheet
(the sheet names the default config maps). Job rows reference drivers by
username, email, full name, partial name, "Allocate Later" or an unknown
name, and a share of rows leaves a required column empty, so a run exercises
every resolver path at volume.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

import numpy as np
import pandas as pd

FIRST_NAMES = ["John", "Jane", "Thabo", "Lerato", "Pieter", "Aisha", "Sipho", "Megan"]
SURNAMES = ["Smith", "Doe", "Nkosi", "Dlamini", "van Wyk", "Patel", "Mokoena", "Jacobs"]
STREETS = ["Main St", "Oak Ave", "Long St", "Voortrekker Rd", "Beach Rd", "Church St"]
SUBURBS = ["Cape Town", "Bellville", "Stellenbosch", "Paarl", "Durbanville"]


def generate_drivers(count: int, rng: np.random.Generator) -> pd.DataFrame:
    rows = []
    for i in range(count):
        first = FIRST_NAMES[i % len(FIRST_NAMES)]
        last = SURNAMES[(i // len(FIRST_NAMES)) % len(SURNAMES)]
        username = f"{first.lower()}.{last.split()[-1].lower()}{i}"
        rows.append({
            "Driver Username *": username,
            "Full Name *": f"{first} {last} {i}",
            "Email Address": f"{username}@example.com",
            "Phone Number *": f"+27 8{rng.integers(0, 9)} {rng.integers(100, 999)} {rng.integers(1000, 9999)}",
            "License Number *": f"LIC{100000 + i}",
            "ID Number *": str(rng.integers(10**12, 10**13 - 1)),
            "PIN *": int(rng.integers(0, 9999)),
            "Status": "active",
        })
    return pd.DataFrame(rows)


def _driver_reference(drivers: pd.DataFrame, rng: np.random.Generator) -> str:
    pick = drivers.iloc[int(rng.integers(0, len(drivers)))]
    style = rng.integers(0, 7)
    if style == 0:
        return pick["Driver Username *"]
    if style == 1:
        return pick["Email Address"]
    if style == 2:
        return pick["Full Name *"]
    if style == 3:
        return pick["Full Name *"].split()[0] + " " + pick["Full Name *"].split()[-1]
    if style == 4:
        return "Allocate Later"
    if style == 5:
        return ""
    return f"Unknown Driver {rng.integers(1, 50)}"


def generate_jobs(count: int, drivers: pd.DataFrame, rng: np.random.Generator, missing_ratio: float) -> pd.DataFrame:
    base = pd.Timestamp("2025-01-01")
    rows = []
    for i in range(count):
        scheduled: object = (base + pd.Timedelta(days=int(rng.integers(0, 60)))).strftime("%Y-%m-%d")
        if i % 5 == 0:
            # Excel シリアル値での日付
            scheduled = float((pd.Timestamp(scheduled) - pd.Timestamp("1970-01-01")).days + 25569)
        pickup = f"{rng.integers(1, 999)} {rng.choice(STREETS)}, {rng.choice(SUBURBS)}"
        if rng.random() < missing_ratio:
            pickup = ""
        rows.append({
            "Customer Name *": f"Customer {i + 1}",
            "Pickup Address *": pickup,
            "Delivery Address *": f"{rng.integers(1, 999)} {rng.choice(STREETS)}, {rng.choice(SUBURBS)}",
            "Scheduled Date *": scheduled,
            "Priority": rng.choice(["low", "medium", "high", ""]),
            "Notes": "" if i % 3 else "Handle with care",
            "Driver Username": _driver_reference(drivers, rng),
        })
    return pd.DataFrame(rows)


def create_workbook(output_path: Path, drivers: int, jobs: int, missing_ratio: float, seed: int) -> Path:
    rng = np.random.default_rng(seed)
    driver_df = generate_drivers(drivers, rng)
    job_df = generate_jobs(jobs, driver_df, rng, missing_ratio)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
        driver_df.to_excel(writer, sheet_name="Drivers Template", index=False)
        job_df.to_excel(writer, sheet_name="Jobs Template", index=False)
    return output_path


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Generate a synthetic driver/job import workbook")
    parser.add_argument("--drivers", type=int, default=50, help="Number of driver rows")
    parser.add_argument("--jobs", type=int, default=3000, help="Number of job rows")
    parser.add_argument("--missing-ratio", type=float, default=0.02, help="Share of jobs without pickup address")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument("--output", type=Path, default=Path("data/perf_import.xlsx"), help="Output workbook")
    args = parser.parse_args(argv)

    if args.drivers < 1 or args.jobs < 0:
        print("drivers must be >= 1 and jobs >= 0", file=sys.stderr)
        return 1
    path = create_workbook(args.output, args.drivers, args.jobs, args.missing_ratio, args.seed)
    print(f"written: {path} (drivers={args.drivers} jobs={args.jobs})")
    return 0


if __name__ == "__main__":
    sys.exit(main())

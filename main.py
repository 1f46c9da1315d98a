#!/usr/bin/env python3
"""
Travel Nurse Tax Engine - Entry Point

Calculates federal income tax, compares travel nurse job offers by
take-home pay, and tracks tax home compliance.

Usage:
    python main.py tax --income 95000 --status single --quarterly
    python main.py brackets --status mfj
    python main.py compare --file data/sample_offers.csv --state TX
    python main.py compare --file data/sample_offers.csv --federal-rate bracket --bonus prorated
    python main.py compliance --file tax_home.json --as-of 2024-06-01 --record-visit 2024-05-20 --save
"""

from nurse_tax_engine.cli import main

if __name__ == "__main__":
    main()

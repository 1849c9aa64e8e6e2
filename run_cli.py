#!/usr/bin/env python3
"""
Launch the InfraTrack CLI
Usage:
    python run_cli.py import pipes.xlsx --points manholes.csv --context SEWAGE
    python run_cli.py audit pipes.xlsx network.dxf --points manholes.csv
    python run_cli.py geojson network.kmz -o ./output
"""
import sys
import os

# Add the package to path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from infratrack.cli.main import main

if __name__ == "__main__":
    sys.exit(main())

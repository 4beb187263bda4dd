"""
Entry point for running the CLI as a module: python -m portfolio_forecast.simulation
"""
from portfolio_forecast.simulation.runner import main

if __name__ == "__main__":
    main()

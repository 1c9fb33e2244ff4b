"""
Plot training and fine-tuning cost curves (damped vs naive decline) and the cost of
breaking safeguards, with attacker budgets as horizontal reference lines.

Usage:
    python scripts/plot_cost_curves.py [--params config/default_parameters.yaml] [--output cost_curves.png]
"""

import argparse
import sys
from pathlib import Path

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
from matplotlib.ticker import FuncFormatter

sys.path.insert(0, str(Path(__file__).parent.parent))

from safeguard_model_backend.safeguard_model import evaluate
from safeguard_model_backend.safeguard_model_parameters import SafeguardModelParameters, load_parameters_from_yaml


def format_dollars(value, _pos=None):
    if value >= 1e9:
        return f"${value / 1e9:.1f}B"
    if value >= 1e6:
        return f"${value / 1e6:.1f}M"
    if value >= 1e3:
        return f"${value / 1e3:.1f}K"
    if value >= 1:
        return f"${value:.0f}"
    return f"${value:.2f}"


def main():
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument('--params', type=str, default=None, help='YAML file of parameter overrides')
    parser.add_argument('--output', type=str, default='cost_curves.png')
    args = parser.parse_args()

    params = load_parameters_from_yaml(args.params) if args.params else SafeguardModelParameters()
    results = evaluate(params)
    curves = results.cost_curves

    fig, ax = plt.subplots(figsize=(9, 6))
    ax.plot(curves.years, curves.training_costs, color='#D45D79', linewidth=2, label='Training (with floor)')
    ax.plot(curves.years, curves.training_costs_naive, color='#D45D79', linewidth=1.5, linestyle='--', label='Training (naive)')
    ax.plot(curves.years, curves.fine_tune_costs, color='#6ECFB0', linewidth=2, label='Fine-tune (with floor)')
    ax.plot(curves.years, curves.break_costs_over_time, color='#9B8FFF', linewidth=2, label='Break safeguards')

    # Attacker budgets
    for attacker in params.attackers:
        ax.axhline(attacker.budget, color=attacker.color_tag or 'gray', linestyle=':', alpha=0.7)
        ax.text(curves.years[-1], attacker.budget * 1.15, attacker.name, ha='right', fontsize=9,
                color=attacker.color_tag or 'gray')

    ax.set_yscale('log')
    ax.yaxis.set_major_formatter(FuncFormatter(format_dollars))
    ax.set_xlabel('Years from now')
    ax.set_ylabel('Cost (USD) - Log Scale')
    ax.set_title(f'{params.compute_costs.model_size_b:.0f}B model: {results.relevance.reason}', fontsize=10)
    ax.grid(axis='y', linestyle='--', alpha=0.5)
    ax.legend(loc='lower left')

    plt.tight_layout()
    plt.savefig(args.output, dpi=150)
    print(f"Saved {args.output}")


if __name__ == '__main__':
    main()

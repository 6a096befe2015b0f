# examples/basic_backbone_build.py

from rcrane import RCraneConfig, read_pdb, run_rcrane
from rcrane.pdb_io import read_probabilities

pdb_path = "data/phosphates_and_bases.pdb"
probs_path = "data/suite_probabilities.csv"

# P, C1' and base atoms only; consecutive residues are connected unless a
# BREAK record separates them
chains = read_pdb(pdb_path, pseudoatom=True)

config = RCraneConfig(name="example", seed=11)

# Either decode the rotamers from per-suite probabilities ...
result = run_rcrane(config, chains, probabilities=read_probabilities(probs_path))

# ... or give them directly, e.g. run_rcrane(config, chains, rotamer_string="1a1a1b")

print("Rotamers:", " ".join(result.path))
for nt, value in result.scores.items():
    print(f"{nt}: objective {value:.2f}")

result.save_pdb("example_RESULT.pdb")

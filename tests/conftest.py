import matplotlib

# Off-screen rendering for plot tests.
matplotlib.use("Agg")

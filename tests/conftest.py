import matplotlib

matplotlib.use("Agg")  # charts are written to tmp_path, never shown

# Ordered run milestones; the index is the step number stored on the run.
RUN_STEPS = (
    "Run Created",
    "Advanced Bagging",
    "Bagging and Clubbing",
    "Handover",
    "Offloaded",
    "Departed",
    "Pre-Alert",
    "Arrived at Destination",
    "Custom Clearance",
    "CP",
)

# Steps that may only be reached once every bag of the run is final
BAGGING_STEPS = frozenset({"Advanced Bagging", "Bagging and Clubbing"})

"""Options, checks, actions and command helpers used while creating a cluster."""
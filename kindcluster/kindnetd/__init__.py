"""Node networking daemon logic: CNI config, masquerade rules and routes."""
SERVICE_NAME = "pick2hmb"

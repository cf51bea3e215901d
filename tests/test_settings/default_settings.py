WORKER_COMMAND = ["node", "dtslint.js"]

not_a_setting = True
